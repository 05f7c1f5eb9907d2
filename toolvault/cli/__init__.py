"""CLI commands for toolvault.

The CLI is built using Click with the main entry point ``toolvault``
(``toolvault.main:cli``).

Key Commands:
    resolve (toolvault.main):
        Resolve the credential environment for one tool, running its
        provider tools if nothing is stored yet.

    credentials (toolvault.cli.credentials):
        List and delete stored credentials, and show which storage
        backends are usable.

Global options ``--credential-context`` and ``--credential-override`` apply
to every command.
"""

"""CLI commands for stored credentials.

This module provides the ``toolvault credentials`` command group for
inspecting and removing credentials persisted by provider tools.

Commands:
    - list: Show stored credentials for the current context or all contexts
    - delete: Remove the credential stored for one tool
    - backends: Show which storage backends can be used on this machine

Secret values are never printed by this group; ``--show-env-vars`` only
reveals the names of the variables each credential sets.

Example:
    List everything, including variable names::

        $ toolvault credentials list --all-contexts --show-env-vars
        $ toolvault --credential-context work credentials delete my-tool
"""

import asyncio
import sys

import click

from toolvault.config.settings import ToolvaultSettings
from toolvault.credentials import (
    HELPER_BACKENDS,
    ContextStore,
    CredentialSummary,
    SearchPathLocator,
    available_backends,
    create_backend,
    helper_executable_name,
)
from toolvault.exceptions import ToolvaultError


def _fail(e: ToolvaultError) -> None:
    click.echo(click.style(f"Error: {e.message}", fg="red"), err=True)
    suggestion = getattr(e, "suggestion", None)
    if suggestion:
        click.echo(click.style(f"Suggestion: {suggestion}", fg="yellow"), err=True)
    sys.exit(1)


def _store(settings: ToolvaultSettings) -> ContextStore:
    return ContextStore(create_backend(settings))


def _render(summaries: list[CredentialSummary], show_env_vars: bool, all_contexts: bool) -> None:
    if not summaries:
        click.echo("No credentials stored")
        return

    headers = (["CONTEXT"] if all_contexts else []) + ["TOOL"]
    if show_env_vars:
        headers.append("ENVIRONMENT VARIABLES")

    rows = []
    for s in summaries:
        row = ([s.context] if all_contexts else []) + [s.tool_name]
        if show_env_vars:
            row.append(", ".join(s.env_names or []))
        rows.append(row)

    widths = [max(len(h), *(len(r[i]) for r in rows)) for i, h in enumerate(headers)]
    click.echo("  ".join(h.ljust(w) for h, w in zip(headers, widths, strict=True)).rstrip())
    for row in rows:
        click.echo("  ".join(c.ljust(w) for c, w in zip(row, widths, strict=True)).rstrip())


@click.group(name="credentials")
def credentials_group():
    """Manage credentials stored by provider tools.

    Examples:

        # Credentials in the current context
        toolvault credentials list

        # Every context, with the variable names each credential sets
        toolvault credentials list --all-contexts --show-env-vars

        # Forget a tool's credential so its provider runs again next time
        toolvault credentials delete my-tool
    """
    pass


@credentials_group.command(name="list")
@click.option("--all-contexts", is_flag=True, help="List credentials from every context")
@click.option("--show-env-vars", is_flag=True, help="Show the names of variables each credential sets")
@click.pass_context
def list_credentials(ctx: click.Context, all_contexts: bool, show_env_vars: bool):
    """List stored credentials."""
    settings: ToolvaultSettings = ctx.obj["settings"]

    try:
        store = _store(settings)
        if all_contexts:
            summaries = asyncio.run(store.list_all(include_env_names=show_env_vars))
        else:
            summaries = asyncio.run(
                store.list(settings.credential_context, include_env_names=show_env_vars)
            )
    except ToolvaultError as e:
        _fail(e)
        return

    _render(summaries, show_env_vars, all_contexts)


@credentials_group.command(name="delete")
@click.argument("tool_name")
@click.pass_context
def delete_credential(ctx: click.Context, tool_name: str):
    """Delete the credential stored for TOOL_NAME in the current context."""
    settings: ToolvaultSettings = ctx.obj["settings"]

    try:
        asyncio.run(_store(settings).delete(settings.credential_context, tool_name))
    except ToolvaultError as e:
        _fail(e)
        return

    click.echo(click.style("Credential deleted successfully", fg="green"))


@credentials_group.command(name="backends")
def list_backends():
    """Show which credential backends are usable on this machine."""
    locator = SearchPathLocator()

    click.echo(click.style("Credential backends:", bold=True))
    for name in available_backends():
        click.echo(f"  {name}: ", nl=False)
        if name not in HELPER_BACKENDS:
            click.echo(click.style("Available", fg="green"))
            continue

        executable = helper_executable_name(name)
        path = locator.locate(executable)
        if path is None:
            click.echo(click.style(f"Not available ({executable} not on PATH)", fg="yellow"))
        else:
            click.echo(click.style(f"Available ({path})", fg="green"))

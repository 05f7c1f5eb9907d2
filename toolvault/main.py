"""CLI entry point for toolvault."""

import asyncio
import json
import sys

import click
import structlog

from toolvault.cli.credentials import credentials_group
from toolvault.config.settings import load_settings
from toolvault.credentials import CredentialManager, ToolSource
from toolvault.exceptions import ConfigurationError, CredentialError, ToolvaultError
from toolvault.utils.logging_config import configure_logging

log = structlog.get_logger(__name__)


def _mask(value: str) -> str:
    if len(value) > 8:
        return value[:4] + "*" * (len(value) - 8) + value[-4:]
    return "*" * len(value)


@click.group()
@click.option(
    "--config",
    "config_path",
    envvar="TOOLVAULT_CONFIG",
    default=None,
    help="Path to config.json (default: per-user config directory)",
)
@click.option("--log-level", default="WARNING", help="Logging level")
@click.option(
    "--credential-context",
    default=None,
    help="Context to read and write credentials in (default: 'default')",
)
@click.option(
    "--credential-override",
    default=None,
    help="Override credentials, e.g. 'toolA:KEY=value;toolB:KEY->SOURCE_VAR'",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: str | None,
    log_level: str,
    credential_context: str | None,
    credential_override: str | None,
) -> None:
    """toolvault: credential resolution for tool runs."""
    configure_logging(log_level)

    try:
        settings = load_settings(config_path)
    except ConfigurationError as e:
        click.echo(f"Error: {e.message}", err=True)
        log.debug("config_error", exc_info=True)
        sys.exit(1)

    updates: dict[str, str] = {}
    if credential_context is not None:
        if not credential_context.strip():
            click.echo("Error: --credential-context must not be empty", err=True)
            sys.exit(1)
        updates["credential_context"] = credential_context
    if credential_override is not None:
        updates["credential_override"] = credential_override
    if updates:
        settings = settings.model_copy(update=updates)

    ctx.obj = {"settings": settings}


@cli.command()
@click.argument("tool_name")
@click.option(
    "--provider",
    "providers",
    multiple=True,
    help="Credential provider tool; repeat for several, later ones win on conflicts",
)
@click.option("--local", is_flag=True, help="Tool comes from a local file; do not persist")
@click.option("--show-values", is_flag=True, help="Print the full environment as JSON")
@click.pass_context
def resolve(
    ctx: click.Context,
    tool_name: str,
    providers: tuple[str, ...],
    local: bool,
    show_values: bool,
) -> None:
    """Resolve the credential environment for TOOL_NAME."""
    settings = ctx.obj["settings"]

    try:
        manager = CredentialManager.from_settings(settings)
        env = asyncio.run(
            manager.resolve(
                tool_name,
                list(providers),
                source=ToolSource.LOCAL if local else ToolSource.REMOTE,
            )
        )
    except CredentialError as e:
        click.echo(click.style(f"Error: {e.message}", fg="red"), err=True)
        if e.suggestion:
            click.echo(click.style(f"Suggestion: {e.suggestion}", fg="yellow"), err=True)
        log.debug("resolve_error", exc_info=True)
        sys.exit(1)
    except ToolvaultError as e:
        click.echo(f"Error: {e.message}", err=True)
        log.debug("resolve_error", exc_info=True)
        sys.exit(1)
    except KeyboardInterrupt:
        click.echo("\nInterrupted by user", err=True)
        sys.exit(130)

    if show_values:
        click.echo(json.dumps({"env": env}, indent=2, sort_keys=True))
        return

    for key in sorted(env):
        click.echo(f"{key}={_mask(env[key])}")


cli.add_command(credentials_group)


if __name__ == "__main__":
    cli()

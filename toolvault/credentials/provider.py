"""Running credential provider tools.

A provider tool is a small program that obtains a secret (from a prompt, an
OAuth flow, another vault...) and prints exactly one JSON object on stdout::

    {"env": {"API_KEY": "..."}}

It receives no arguments. Its stdout is treated as untrusted input: anything
other than that exact shape is rejected as a whole.
"""

from __future__ import annotations

import os
import shlex
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Protocol

import structlog
from pydantic import BaseModel, ConfigDict, ValidationError

from toolvault.utils.async_subprocess import run_command

from .exceptions import ProviderExecutionError, ProviderOutputError

log = structlog.get_logger(__name__)

CONTEXT_ENV_VAR = "TOOLVAULT_CREDENTIAL_CONTEXT"
TOOL_ENV_VAR = "TOOLVAULT_CREDENTIAL_TOOL"


@dataclass(frozen=True)
class ExecutionResult:
    stdout: str
    stderr: str
    returncode: int


class ToolExecutor(Protocol):
    """Runs a named tool with the given environment and captures its output."""

    async def run_tool(
        self,
        tool_name: str,
        env: Mapping[str, str],
        timeout: float | None = None,
    ) -> ExecutionResult: ...


class SubprocessToolExecutor:
    """Execute provider tools as local subprocesses.

    Args:
        commands: Optional table of tool name -> argv. Names that are not in
            the table are split with shlex and executed directly.
    """

    def __init__(self, commands: Mapping[str, Sequence[str]] | None = None) -> None:
        self.commands = {name: list(argv) for name, argv in (commands or {}).items()}

    def command_for(self, tool_name: str) -> list[str]:
        """Return the argv for a provider tool.

        Raises:
            ProviderExecutionError: If the name cannot be split into an argv
        """
        if tool_name in self.commands:
            return self.commands[tool_name]

        try:
            return shlex.split(tool_name)
        except ValueError as e:
            raise ProviderExecutionError(
                f"Cannot parse credential provider command {tool_name!r}: {e}",
                provider=tool_name,
                suggestion="Configure the command under 'providers' in the toolvault config",
            ) from e

    async def run_tool(
        self,
        tool_name: str,
        env: Mapping[str, str],
        timeout: float | None = None,
    ) -> ExecutionResult:
        argv = self.command_for(tool_name)
        if not argv:
            raise ProviderExecutionError("Empty provider command", provider=tool_name)

        # Secrets must arrive byte-exact, so undecodable stdout is an error
        try:
            stdout, stderr, returncode = await run_command(
                *argv, check=False, timeout=timeout, env=env, stdout_errors="strict"
            )
        except UnicodeDecodeError:
            raise ProviderOutputError(
                f"Credential provider {tool_name!r} printed output that is not valid UTF-8",
                reference=tool_name,
            ) from None
        return ExecutionResult(stdout=stdout, stderr=stderr, returncode=returncode)


class ProviderOutput(BaseModel):
    """The only accepted provider output shape."""

    model_config = ConfigDict(extra="forbid", strict=True)

    env: dict[str, str]


def parse_provider_output(provider: str, stdout: str) -> dict[str, str]:
    """Validate provider stdout and return its environment mapping.

    Raises:
        ProviderOutputError: For anything but one ``{"env": {str: str}}`` object
    """
    text = stdout.strip()
    if not text:
        raise ProviderOutputError(
            f"Credential provider {provider!r} printed nothing",
            reference=provider,
            suggestion='Providers must print one JSON object like {"env": {"KEY": "value"}}',
        )

    # Output may contain secrets, so messages only report error locations
    try:
        output = ProviderOutput.model_validate_json(text)
    except ValidationError as e:
        locations = sorted({".".join(str(p) for p in err["loc"]) or "<root>" for err in e.errors()})
        raise ProviderOutputError(
            f"Credential provider {provider!r} printed invalid output "
            f"(problems at: {', '.join(locations)})",
            reference=provider,
            suggestion='Providers must print one JSON object like {"env": {"KEY": "value"}}',
        ) from None

    return dict(output.env)


class ProviderRunner:
    """Run provider tools and merge what they print.

    Example:
        >>> runner = ProviderRunner(SubprocessToolExecutor({"my-provider": ["./get-key.sh"]}))
        >>> await runner.run_all(["my-provider"], context="default", tool_name="my-tool")
        {'API_KEY': '...'}
    """

    def __init__(
        self,
        executor: ToolExecutor,
        timeout: float | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.executor = executor
        self.timeout = timeout
        self._environ = environ

    def _provider_env(self, context: str, tool_name: str) -> dict[str, str]:
        env = dict(self._environ if self._environ is not None else os.environ)
        env[CONTEXT_ENV_VAR] = context
        env[TOOL_ENV_VAR] = tool_name
        return env

    async def run(self, provider: str, *, context: str, tool_name: str) -> dict[str, str]:
        """Run one provider tool.

        Raises:
            ProviderExecutionError: Non-zero exit, timeout, or unrunnable tool
            ProviderOutputError: Output violates the contract
        """
        log.info("provider_started", provider=provider, context=context, tool=tool_name)

        try:
            result = await self.executor.run_tool(
                provider, self._provider_env(context, tool_name), timeout=self.timeout
            )
        except TimeoutError as e:
            raise ProviderExecutionError(
                f"Credential provider {provider!r} timed out after {self.timeout}s",
                provider=provider,
                reference=f"{context}/{tool_name}",
            ) from e
        except OSError as e:
            raise ProviderExecutionError(
                f"Cannot run credential provider {provider!r}: {e}",
                provider=provider,
                reference=f"{context}/{tool_name}",
            ) from e

        if result.returncode != 0:
            raise ProviderExecutionError(
                f"Credential provider {provider!r} exited with status {result.returncode}: "
                f"{result.stderr.strip()[-500:]}",
                provider=provider,
                returncode=result.returncode,
                reference=f"{context}/{tool_name}",
            )

        env = parse_provider_output(provider, result.stdout)
        log.info("provider_finished", provider=provider, tool=tool_name, env_names=sorted(env))
        return env

    async def run_all(
        self, providers: Sequence[str], *, context: str, tool_name: str
    ) -> dict[str, str]:
        """Run providers in declared order; later keys overwrite earlier ones."""
        merged: dict[str, str] = {}
        for provider in providers:
            merged.update(await self.run(provider, context=context, tool_name=tool_name))
        return merged

"""Credential resolution for tool runs.

Precedence, first match wins:

1. Override expression (``--credential-override``)
2. Results already resolved during this run
3. Persisted record in the context store
4. Provider tools, run in declared order and merged

Resolutions are single-flight per ``(context, tool_name)``: however many
tools ask concurrently, the provider sequence runs once and every caller
sees the same mapping or the same failure. A failed entry stays failed for
the lifetime of the manager; nothing is retried automatically.

Credentials produced for tools loaded from a local file are cached for the
run but never persisted.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from enum import Enum
from typing import TYPE_CHECKING

import structlog

from .exceptions import ResolutionCancelledError
from .overrides import OverrideResolver
from .provider import ProviderRunner, SubprocessToolExecutor, ToolExecutor
from .registry import create_backend
from .store import DEFAULT_CONTEXT, ContextStore, validate_context

if TYPE_CHECKING:
    from toolvault.config.settings import ToolvaultSettings

log = structlog.get_logger(__name__)

CacheKey = tuple[str, str]


class ToolSource(str, Enum):
    """Where a tool definition came from."""

    REMOTE = "remote"
    LOCAL = "local"

    def __str__(self) -> str:
        return self.value


class _Flight:
    """Shared result cell for one in-flight or finished resolution."""

    def __init__(self) -> None:
        self._done = asyncio.Event()
        self.env: dict[str, str] | None = None
        self.error: BaseException | None = None

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def complete(self, env: dict[str, str]) -> None:
        self.env = env
        self._done.set()

    def fail(self, error: BaseException) -> None:
        self.error = error
        self._done.set()

    async def wait(self) -> dict[str, str]:
        await self._done.wait()
        if self.error is not None:
            raise self.error
        assert self.env is not None
        return dict(self.env)


class CredentialManager:
    """Resolve the environment a tool needs.

    Args:
        store: Persistent, context-namespaced credential storage
        runner: Runs provider tools
        overrides: Parsed override expression, if any
        context: Context used when ``resolve`` is not given one

    Example:
        >>> manager = CredentialManager.from_settings(load_settings())
        >>> env = await manager.resolve("my-tool", ["my-tool-credential"])
    """

    def __init__(
        self,
        store: ContextStore,
        runner: ProviderRunner,
        overrides: OverrideResolver | None = None,
        context: str = DEFAULT_CONTEXT,
    ) -> None:
        self.store = store
        self.runner = runner
        self.overrides = overrides or OverrideResolver()
        self.context = validate_context(context)
        self._flights: dict[CacheKey, _Flight] = {}
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(
        cls,
        settings: ToolvaultSettings,
        executor: ToolExecutor | None = None,
    ) -> CredentialManager:
        """Build the full resolution stack from settings.

        Raises:
            ConfigurationError: Unknown ``credsStore``
            OverrideParseError: Malformed override expression
        """
        backend = create_backend(settings)
        runner = ProviderRunner(
            executor or SubprocessToolExecutor(settings.providers),
            timeout=settings.provider_timeout,
        )
        return cls(
            store=ContextStore(backend),
            runner=runner,
            overrides=OverrideResolver(settings.credential_override),
            context=settings.credential_context,
        )

    async def resolve(
        self,
        tool_name: str,
        providers: Sequence[str],
        source: ToolSource = ToolSource.REMOTE,
        context: str | None = None,
    ) -> dict[str, str]:
        """Resolve the environment mapping for one tool.

        Args:
            tool_name: Tool whose credentials are needed
            providers: Provider tool names declared by the tool, in order
            source: Provenance of the tool; LOCAL results are never persisted
            context: Credential context; defaults to the manager's

        Returns:
            A fresh dict the caller may modify

        Raises:
            OverrideEnvMissingError: Override refers to an unset variable
            CredentialError: Any store, helper or provider failure
            ResolutionCancelledError: The resolution being waited on was cancelled
        """
        context = validate_context(self.context if context is None else context)

        override = self.overrides.resolve(tool_name)
        if override is not None:
            log.info("credential_resolved", source="override", context=context, tool=tool_name)
            return override

        key = (context, tool_name)
        async with self._lock:
            flight = self._flights.get(key)
            leader = flight is None
            if flight is None:
                flight = _Flight()
                self._flights[key] = flight

        if not leader:
            log.debug("credential_wait", context=context, tool=tool_name, done=flight.done)
            return await flight.wait()

        try:
            env = await self._resolve_uncached(context, tool_name, providers, source)
        except asyncio.CancelledError:
            flight.fail(
                ResolutionCancelledError(
                    "Credential resolution was cancelled",
                    reference=f"{context}/{tool_name}",
                )
            )
            if self._flights.get(key) is flight:
                del self._flights[key]
            raise
        except Exception as e:
            flight.fail(e)
            log.warning(
                "credential_resolution_failed",
                context=context,
                tool=tool_name,
                error=type(e).__name__,
            )
            raise

        flight.complete(env)
        return dict(env)

    async def _resolve_uncached(
        self,
        context: str,
        tool_name: str,
        providers: Sequence[str],
        source: ToolSource,
    ) -> dict[str, str]:
        stored = await self.store.get(context, tool_name)
        if stored is not None:
            log.info("credential_resolved", source="store", context=context, tool=tool_name)
            return stored

        if not providers:
            log.debug("credential_no_providers", context=context, tool=tool_name)
            return {}

        env = await self.runner.run_all(providers, context=context, tool_name=tool_name)

        if source is ToolSource.LOCAL:
            log.info("credential_not_persisted", reason="local_tool", context=context, tool=tool_name)
        else:
            await self.store.set(context, tool_name, env)

        log.info("credential_resolved", source="provider", context=context, tool=tool_name)
        return env

    def clear_cache(self) -> None:
        """Forget every resolution made so far, including failures.

        In-flight resolutions keep running; their callers still get a result.
        """
        self._flights.clear()
        log.debug("credential_cache_cleared")

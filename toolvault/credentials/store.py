"""Context-namespaced view over a credential backend."""

from __future__ import annotations

from dataclasses import dataclass

from .backend import CredentialBackend
from .exceptions import CredentialNotFoundError, InvalidContextError

DEFAULT_CONTEXT = "default"


@dataclass(frozen=True)
class CredentialSummary:
    """Listing entry. Never carries secret values."""

    context: str
    tool_name: str
    env_names: list[str] | None = None


def validate_context(context: str) -> str:
    if not context or not context.strip():
        raise InvalidContextError(
            "Credential context must be a non-empty name",
            reference=repr(context),
            suggestion=f"Omit --credential-context to use {DEFAULT_CONTEXT!r}",
        )
    return context


class ContextStore:
    """Forward credential operations to a backend, namespaced by context.

    Holds nothing but the backend reference; every call validates the
    context name before touching storage.

    Example:
        >>> store = ContextStore(FileBackend(path))
        >>> await store.set("default", "my-tool", {"API_KEY": "abc"})
        >>> [s.tool_name for s in await store.list("default")]
        ['my-tool']
    """

    def __init__(self, backend: CredentialBackend) -> None:
        self.backend = backend

    async def get(self, context: str, tool_name: str) -> dict[str, str] | None:
        return await self.backend.get(validate_context(context), tool_name)

    async def set(self, context: str, tool_name: str, env: dict[str, str]) -> None:
        await self.backend.set(validate_context(context), tool_name, env)

    async def delete(self, context: str, tool_name: str) -> None:
        """Delete one record.

        Raises:
            CredentialNotFoundError: If there is nothing stored for the pair
        """
        if not await self.backend.delete(validate_context(context), tool_name):
            raise CredentialNotFoundError(
                f"No credential stored for tool {tool_name!r}",
                reference=f"{context}/{tool_name}",
                suggestion="Run 'toolvault credentials list' to see stored credentials",
            )

    async def list(
        self, context: str, include_env_names: bool = False
    ) -> list[CredentialSummary]:
        records = await self.backend.list(validate_context(context))
        return [
            CredentialSummary(
                context=r.context,
                tool_name=r.tool_name,
                env_names=r.env_names if include_env_names else None,
            )
            for r in records
        ]

    async def list_all(self, include_env_names: bool = False) -> list[CredentialSummary]:
        records = await self.backend.list(None)
        return [
            CredentialSummary(
                context=r.context,
                tool_name=r.tool_name,
                env_names=r.env_names if include_env_names else None,
            )
            for r in records
        ]

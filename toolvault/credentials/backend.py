"""Abstract backend protocol for credential storage."""

from __future__ import annotations

from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field


class CredentialRecord(BaseModel):
    """One persisted credential: the environment a tool needs in a context."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    context: str
    tool_name: str = Field(alias="toolName")
    env: dict[str, str] = Field(default_factory=dict)

    @property
    def env_names(self) -> list[str]:
        """Sorted names of the environment variables this record sets."""
        return sorted(self.env)


class CredentialBackend(Protocol):
    """Protocol defining the interface for credential storage backends.

    Records are keyed by ``(context, tool_name)``. All methods are
    coroutines because backends either do file I/O or spawn a helper.
    """

    @property
    def name(self) -> str:
        """Backend identifier (e.g., 'file', 'osxkeychain')."""
        ...

    async def get(self, context: str, tool_name: str) -> dict[str, str] | None:
        """Retrieve a credential.

        Returns:
            Environment mapping or None if not found

        Raises:
            BackendNotAvailableError: If backend is not available
            StoreCorruptError: If the persisted document is unreadable
            HelperProtocolError: If a helper misbehaves
        """
        ...

    async def set(self, context: str, tool_name: str, env: dict[str, str]) -> None:
        """Store a credential, replacing any existing record for the pair."""
        ...

    async def delete(self, context: str, tool_name: str) -> bool:
        """Delete a credential.

        Returns:
            True if credential was deleted, False if not found
        """
        ...

    async def list(self, context: str | None = None) -> list[CredentialRecord]:
        """List records in one context, or in every context when None.

        Records are sorted by ``(context, tool_name)``.
        """
        ...

"""Plain JSON file backend.

All credentials live in one document shaped like::

    {
        "default": {
            "my-tool": {"API_KEY": "..."}
        },
        "work": {
            "my-tool": {"API_KEY": "..."}
        }
    }

Concurrency Model:
    A single asyncio lock covers every read-modify-write cycle, so several
    tools persisting credentials concurrently within one run cannot lose
    each other's updates.

Writes go to a temporary file in the same directory which is then renamed
over the target, so a crash never leaves a truncated document behind.
"""

from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path
from typing import Any

import aiofiles
import structlog

from .backend import CredentialRecord
from .exceptions import StoreCorruptError

log = structlog.get_logger(__name__)

CredentialDocument = dict[str, dict[str, dict[str, str]]]


class FileBackend:
    """Credential storage in a local JSON file.

    Example:
        >>> backend = FileBackend(Path("~/.config/toolvault/credentials.json"))
        >>> await backend.set("default", "my-tool", {"API_KEY": "abc"})
        >>> await backend.get("default", "my-tool")
        {'API_KEY': 'abc'}
    """

    def __init__(self, file_path: Path | str) -> None:
        self.file_path = Path(file_path).expanduser()
        self._lock = asyncio.Lock()

    @property
    def name(self) -> str:
        return "file"

    async def _load(self) -> CredentialDocument:
        """Read and validate the document. Caller must hold the lock."""
        if not self.file_path.exists():
            return {}

        try:
            async with aiofiles.open(self.file_path, encoding="utf-8") as f:
                content = await f.read()
        except OSError as e:
            raise StoreCorruptError(
                f"Cannot read credentials file: {e}",
                reference=str(self.file_path),
            ) from e
        except UnicodeDecodeError:
            raise StoreCorruptError(
                "Credentials file is not valid UTF-8",
                reference=str(self.file_path),
                suggestion="Restore it from a backup or delete it to start over",
            ) from None

        if not content.strip():
            return {}

        try:
            document = json.loads(content)
        except json.JSONDecodeError as e:
            raise StoreCorruptError(
                "Credentials file is not valid JSON",
                reference=str(self.file_path),
                suggestion="Restore it from a backup or delete it to start over",
            ) from e

        return self._validate(document)

    def _validate(self, document: Any) -> CredentialDocument:
        if not isinstance(document, dict):
            raise StoreCorruptError(
                "Credentials file must contain a JSON object",
                reference=str(self.file_path),
            )

        for context, tools in document.items():
            if not isinstance(tools, dict):
                raise StoreCorruptError(
                    f"Context {context!r} is not an object",
                    reference=str(self.file_path),
                )
            for tool_name, env in tools.items():
                if not isinstance(env, dict) or not all(
                    isinstance(k, str) and isinstance(v, str) for k, v in env.items()
                ):
                    raise StoreCorruptError(
                        f"Credential {context}/{tool_name} is not a string mapping",
                        reference=str(self.file_path),
                    )

        return document

    async def _save(self, document: CredentialDocument) -> None:
        """Write the document atomically. Caller must hold the lock.

        The temporary file is created owner-only before any secret is
        written to it, and removed again if the write fails.
        """
        self.file_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.file_path.with_suffix(".tmp")
        content = json.dumps(document, indent=2, sort_keys=True)

        # O_CREAT keeps the mode of an existing file, so drop any leftover first
        tmp_path.unlink(missing_ok=True)
        fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)

        try:
            async with aiofiles.open(fd, "w", encoding="utf-8") as f:
                await f.write(content)

            # Atomic rename - safe on POSIX when same filesystem
            tmp_path.replace(self.file_path)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise

    async def get(self, context: str, tool_name: str) -> dict[str, str] | None:
        async with self._lock:
            document = await self._load()

        env = document.get(context, {}).get(tool_name)
        if env is None:
            return None

        log.debug("credential_read", backend=self.name, context=context, tool=tool_name)
        return dict(env)

    async def set(self, context: str, tool_name: str, env: dict[str, str]) -> None:
        async with self._lock:
            document = await self._load()
            document.setdefault(context, {})[tool_name] = dict(env)
            await self._save(document)

        log.info(
            "credential_stored",
            backend=self.name,
            context=context,
            tool=tool_name,
            env_names=sorted(env),
        )

    async def delete(self, context: str, tool_name: str) -> bool:
        async with self._lock:
            document = await self._load()
            tools = document.get(context)
            if tools is None or tool_name not in tools:
                return False

            del tools[tool_name]
            # Remove context entry if empty
            if not tools:
                del document[context]

            await self._save(document)

        log.info("credential_deleted", backend=self.name, context=context, tool=tool_name)
        return True

    async def list(self, context: str | None = None) -> list[CredentialRecord]:
        async with self._lock:
            document = await self._load()

        records = [
            CredentialRecord(context=ctx, tool_name=tool_name, env=env)
            for ctx, tools in document.items()
            if context is None or ctx == context
            for tool_name, env in tools.items()
        ]
        return sorted(records, key=lambda r: (r.context, r.tool_name))

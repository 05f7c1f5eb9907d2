"""Backend that delegates to an external credential helper executable.

Helpers wrap an OS-native secure store (macOS Keychain, Windows Credential
Manager, Secret Service, pass). A helper is found on the search path as
``toolvault-credential-<name>`` (``.exe`` on Windows) and is spawned once
per operation.

Protocol:
    The helper receives the operation (``get``, ``store``, ``erase`` or
    ``list``) as its only argument and one JSON line on stdin::

        {"context": "default", "toolName": "my-tool", "env": {"API_KEY": "..."}}

    It answers with one JSON line on stdout and exits 0::

        {"status": "ok", "env": {...}}                 # get
        {"status": "ok"}                               # store, erase
        {"status": "ok", "credentials": [{...}, ...]}  # list
        {"status": "not_found"}                        # get, erase
        {"status": "error", "message": "..."}

    A non-zero exit status is a hard failure regardless of output.
"""

from __future__ import annotations

import json
from typing import Any, Literal

import structlog
from pydantic import BaseModel, ConfigDict, ValidationError

from toolvault.utils.async_subprocess import run_command

from .backend import CredentialRecord
from .exceptions import BackendNotAvailableError, HelperProtocolError
from .locator import HelperLocator, SearchPathLocator, helper_executable_name

log = structlog.get_logger(__name__)

HELPER_BACKENDS = ("osxkeychain", "wincred", "secretservice", "pass")


class HelperResponse(BaseModel):
    """One response line from a credential helper."""

    model_config = ConfigDict(extra="ignore", strict=True)

    status: Literal["ok", "not_found", "error"]
    message: str | None = None
    env: dict[str, str] | None = None
    credentials: list[CredentialRecord] | None = None


class HelperBackend:
    """Credential storage through an external helper executable.

    Example:
        >>> backend = HelperBackend("secretservice")
        >>> await backend.set("default", "my-tool", {"API_KEY": "abc"})
    """

    def __init__(
        self,
        helper_name: str,
        locator: HelperLocator | None = None,
        timeout: float | None = None,
    ) -> None:
        self.helper_name = helper_name
        self.locator = locator or SearchPathLocator()
        self.timeout = timeout

    @property
    def name(self) -> str:
        return self.helper_name

    @property
    def executable(self) -> str:
        return helper_executable_name(self.helper_name)

    def _locate(self) -> str:
        path = self.locator.locate(self.executable)
        if path is None:
            raise BackendNotAvailableError(
                f"Credential helper {self.executable!r} was not found on the search path",
                reference=self.helper_name,
                suggestion=(
                    f"Install {self.executable} or set \"credsStore\": \"file\" "
                    "in the toolvault config"
                ),
            )
        return str(path)

    async def _call(self, operation: str, payload: dict[str, Any]) -> HelperResponse:
        executable = self._locate()
        request = json.dumps(payload) + "\n"

        try:
            stdout, stderr, returncode = await run_command(
                executable,
                operation,
                check=False,
                timeout=self.timeout,
                input=request,
                stdout_errors="strict",
            )
        except (FileNotFoundError, PermissionError) as e:
            raise BackendNotAvailableError(
                f"Cannot execute credential helper: {e}",
                reference=self.helper_name,
            ) from e
        except TimeoutError as e:
            raise HelperProtocolError(
                f"Credential helper timed out during {operation}",
                reference=self.helper_name,
            ) from e
        except UnicodeDecodeError:
            raise HelperProtocolError(
                f"Credential helper {operation} response is not valid UTF-8",
                reference=self.helper_name,
            ) from None

        if returncode != 0:
            raise HelperProtocolError(
                f"Credential helper {operation} exited with status {returncode}: "
                f"{stderr.strip()[-500:]}",
                reference=self.helper_name,
            )

        lines = [line for line in stdout.splitlines() if line.strip()]
        if len(lines) != 1:
            raise HelperProtocolError(
                f"Credential helper {operation} returned {len(lines)} response lines, expected 1",
                reference=self.helper_name,
            )

        # Responses may carry secrets; keep the validation detail out of tracebacks
        try:
            response = HelperResponse.model_validate_json(lines[0])
        except ValidationError as e:
            raise HelperProtocolError(
                f"Malformed credential helper response to {operation}: "
                f"{e.error_count()} validation error(s)",
                reference=self.helper_name,
            ) from None

        if response.status == "error":
            raise HelperProtocolError(
                f"Credential helper {operation} failed: {response.message or 'unknown error'}",
                reference=self.helper_name,
            )

        log.debug("credential_helper_called", helper=self.helper_name, operation=operation)
        return response

    async def get(self, context: str, tool_name: str) -> dict[str, str] | None:
        response = await self._call(
            "get", {"context": context, "toolName": tool_name, "env": None}
        )
        if response.status == "not_found":
            return None
        if response.env is None:
            raise HelperProtocolError(
                "Credential helper get response has no env",
                reference=self.helper_name,
            )
        return dict(response.env)

    async def set(self, context: str, tool_name: str, env: dict[str, str]) -> None:
        response = await self._call(
            "store", {"context": context, "toolName": tool_name, "env": dict(env)}
        )
        if response.status != "ok":
            raise HelperProtocolError(
                f"Credential helper store answered {response.status!r}",
                reference=self.helper_name,
            )
        log.info(
            "credential_stored",
            backend=self.name,
            context=context,
            tool=tool_name,
            env_names=sorted(env),
        )

    async def delete(self, context: str, tool_name: str) -> bool:
        response = await self._call(
            "erase", {"context": context, "toolName": tool_name, "env": None}
        )
        if response.status == "not_found":
            return False
        log.info("credential_deleted", backend=self.name, context=context, tool=tool_name)
        return True

    async def list(self, context: str | None = None) -> list[CredentialRecord]:
        response = await self._call("list", {"context": context, "toolName": None, "env": None})
        if response.credentials is None:
            raise HelperProtocolError(
                "Credential helper list response has no credentials",
                reference=self.helper_name,
            )

        records = [r for r in response.credentials if context is None or r.context == context]
        return sorted(records, key=lambda r: (r.context, r.tool_name))

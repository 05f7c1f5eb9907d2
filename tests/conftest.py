"""Pytest configuration and shared fixtures."""

import asyncio
from collections.abc import Mapping
from pathlib import Path

import pytest
import structlog

from toolvault.credentials import (
    ContextStore,
    CredentialManager,
    ExecutionResult,
    FileBackend,
    OverrideResolver,
    ProviderRunner,
)


class FakeExecutor:
    """Scripted stand-in for the tool executor.

    ``outputs`` maps provider name to stdout text, an ExecutionResult, or an
    exception to raise. Set ``gate`` to hold every run until it is opened.
    """

    def __init__(self, outputs: Mapping[str, object] | None = None) -> None:
        self.outputs = dict(outputs or {})
        self.calls: list[tuple[str, dict[str, str]]] = []
        self.gate: asyncio.Event | None = None

    @property
    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]

    async def run_tool(
        self,
        tool_name: str,
        env: Mapping[str, str],
        timeout: float | None = None,
    ) -> ExecutionResult:
        self.calls.append((tool_name, dict(env)))
        if self.gate is not None:
            await self.gate.wait()

        result = self.outputs[tool_name]
        if isinstance(result, BaseException):
            raise result
        if isinstance(result, ExecutionResult):
            return result
        return ExecutionResult(stdout=str(result), stderr="", returncode=0)

    async def wait_for_calls(self, count: int = 1) -> None:
        """Poll until the executor has been called ``count`` times."""

        async def _poll() -> None:
            while len(self.calls) < count:
                await asyncio.sleep(0.01)

        await asyncio.wait_for(_poll(), timeout=5)


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    """Keep tests away from the real config directory and TOOLVAULT_* settings."""
    for name in (
        "TOOLVAULT_CONFIG",
        "TOOLVAULT_CREDS_STORE",
        "TOOLVAULT_CREDENTIAL_CONTEXT",
        "TOOLVAULT_CREDENTIAL_OVERRIDE",
        "TOOLVAULT_PROVIDER_TIMEOUT",
        "TOOLVAULT_PROVIDERS",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("TOOLVAULT_CONFIG_DIR", str(tmp_path / "config"))
    yield
    structlog.reset_defaults()


@pytest.fixture
def credentials_file(tmp_path: Path) -> Path:
    return tmp_path / "config" / "credentials.json"


@pytest.fixture
def file_backend(credentials_file: Path) -> FileBackend:
    return FileBackend(credentials_file)


@pytest.fixture
def context_store(file_backend: FileBackend) -> ContextStore:
    return ContextStore(file_backend)


@pytest.fixture
def executor() -> FakeExecutor:
    return FakeExecutor({"my-tool-provider": '{"env": {"X": "1"}}'})


@pytest.fixture
def manager(context_store: ContextStore, executor: FakeExecutor) -> CredentialManager:
    return CredentialManager(
        store=context_store,
        runner=ProviderRunner(executor, environ={}),
        overrides=OverrideResolver(),
    )

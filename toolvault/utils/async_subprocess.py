"""Async subprocess utilities.

Provides non-blocking subprocess execution for provider tools and credential
helpers, both of which run from asyncio code.

Key Features:
    - Non-blocking execution compatible with asyncio
    - Optional stdin payload and explicit environment
    - Configurable timeout with automatic process cleanup
    - Cancellation kills the child before the CancelledError propagates

Example:
    >>> from toolvault.utils.async_subprocess import run_command
    >>> stdout, stderr, code = await run_command("my-provider", check=False)
    >>> if code == 0:
    ...     print(stdout)

Thread Safety:
    Safe to call concurrently from multiple async tasks. Each call creates an
    independent subprocess with no shared state.
"""

import asyncio
import subprocess
from collections.abc import Mapping
from pathlib import Path


async def _terminate(process: asyncio.subprocess.Process) -> None:
    """Kill a still-running process and reap it."""
    if process.returncode is None:
        try:
            process.kill()
        except ProcessLookupError:
            pass
    await process.wait()


async def run_command(
    *args: str,
    cwd: Path | str | None = None,
    check: bool = True,
    timeout: float | None = None,
    input: str | None = None,
    env: Mapping[str, str] | None = None,
    stdout_errors: str = "replace",
) -> tuple[str, str, int]:
    """Run a command asynchronously without shell interpolation.

    Args:
        *args: Command and arguments as separate strings. The first argument
            is the executable.
        cwd: Working directory for command execution. If None, uses the
            current working directory of the parent process.
        check: If True (default), raise CalledProcessError when the command
            returns a non-zero exit code.
        timeout: Maximum seconds to wait for command completion. If exceeded,
            the process is killed and TimeoutError is raised. None means
            wait indefinitely.
        input: Text written to the child's stdin, which is then closed. When
            None the child gets no stdin at all.
        env: Complete environment for the child. None inherits ours.
        stdout_errors: Codec error handler for decoding stdout. Pass
            "strict" when stdout must round-trip exactly.

    Returns:
        Tuple of (stdout, stderr, return_code) with stdout and stderr decoded
        as UTF-8 (invalid stderr bytes always replaced).

    Raises:
        subprocess.CalledProcessError: If check=True and command returns
            non-zero.
        TimeoutError: If timeout is exceeded. The process is killed first.
        asyncio.CancelledError: If the awaiting task is cancelled. The process
            is killed first.
        UnicodeDecodeError: If stdout_errors="strict" and stdout is not UTF-8.
        FileNotFoundError: If the command executable is not found.
        PermissionError: If the executable cannot be executed.
    """
    process = await asyncio.create_subprocess_exec(
        *args,
        cwd=cwd,
        stdin=asyncio.subprocess.PIPE if input is not None else asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        env=dict(env) if env is not None else None,
    )

    payload = input.encode("utf-8") if input is not None else None

    try:
        stdout_bytes, stderr_bytes = await asyncio.wait_for(
            process.communicate(payload),
            timeout=timeout,
        )
    except (TimeoutError, asyncio.CancelledError):
        await asyncio.shield(_terminate(process))
        raise

    stdout = (stdout_bytes or b"").decode("utf-8", errors=stdout_errors)
    stderr = (stderr_bytes or b"").decode("utf-8", errors="replace")

    if check and process.returncode != 0:
        raise subprocess.CalledProcessError(
            process.returncode,
            args,
            stdout,
            stderr,
        )

    return stdout, stderr, process.returncode or 0

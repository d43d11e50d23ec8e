"""Bounded asyncio subprocess execution for the controller binary."""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import sys
from collections.abc import Mapping

from clawdeck.client.base import DEFAULT_TIMEOUT_SECONDS, RunResult
from clawdeck.client.errors import SpawnError

logger = logging.getLogger("clawdeck.client.executor")

READ_CHUNK_BYTES = 64 * 1024
# Upper bound for draining pipes after a kill; grandchildren that escaped the
# process group may otherwise hold them open forever.
DRAIN_GRACE_SECONDS = 2.0


async def _drain(stream: asyncio.StreamReader | None, chunks: list[bytes]) -> None:
    if stream is None:
        return
    while True:
        chunk = await stream.read(READ_CHUNK_BYTES)
        if not chunk:
            return
        chunks.append(chunk)


async def _feed(stream: asyncio.StreamWriter | None, data: str) -> None:
    if stream is None:
        return
    try:
        stream.write(data.encode("utf-8"))
        await stream.drain()
    except (BrokenPipeError, ConnectionResetError):
        # Process exited without consuming its input; its exit status reports the outcome.
        logger.debug("Controller process closed stdin before input was fully written")
    finally:
        stream.close()


def _kill(process: asyncio.subprocess.Process) -> None:
    if process.returncode is not None:
        return
    try:
        if sys.platform != "win32":
            os.killpg(process.pid, signal.SIGKILL)
        else:
            process.kill()
    except ProcessLookupError:
        pass


async def _settle(tasks: list[asyncio.Task]) -> None:
    """Wait briefly for I/O tasks, cancelling any that outlive the grace period."""
    if not tasks:
        return
    _, pending = await asyncio.wait(tasks, timeout=DRAIN_GRACE_SECONDS)
    for task in pending:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)


def _decode(chunks: list[bytes]) -> str:
    return b"".join(chunks).decode("utf-8", errors="replace")


async def execute(
    binary: str,
    args: list[str],
    *,
    env: Mapping[str, str] | None = None,
    stdin: str | None = None,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
) -> RunResult:
    """Run ``binary`` with ``args`` and capture its output.

    Never raises for a non-zero exit, a signal or a timeout: the caller gets a
    ``RunResult`` holding whatever output was buffered. Only spawn failures
    raise (``SpawnError``).
    """
    kwargs: dict[str, object] = {}
    if sys.platform == "win32":
        kwargs["creationflags"] = 0x00000200  # CREATE_NEW_PROCESS_GROUP
    else:
        kwargs["start_new_session"] = True

    try:
        process = await asyncio.create_subprocess_exec(
            binary,
            *args,
            stdin=asyncio.subprocess.PIPE if stdin is not None else asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=dict(env) if env is not None else None,
            **kwargs,
        )
    except OSError as exc:
        raise SpawnError(f"Failed to start {binary}: {exc}") from exc

    stdout_chunks: list[bytes] = []
    stderr_chunks: list[bytes] = []
    io_tasks = [
        asyncio.create_task(_drain(process.stdout, stdout_chunks)),
        asyncio.create_task(_drain(process.stderr, stderr_chunks)),
    ]
    feed_task: asyncio.Task | None = None
    if stdin is not None:
        feed_task = asyncio.create_task(_feed(process.stdin, stdin))

    timed_out = False
    try:
        await asyncio.wait_for(process.wait(), timeout=timeout_seconds)
    except asyncio.TimeoutError:
        timed_out = True
        logger.warning("Controller command timed out after %.1fs: %s %s", timeout_seconds, binary, args[:3])
        _kill(process)
        await process.wait()
    except BaseException:
        _kill(process)
        for task in io_tasks:
            task.cancel()
        if feed_task is not None:
            feed_task.cancel()
        raise

    if feed_task is not None:
        await _settle([feed_task])
    await _settle(io_tasks)

    returncode = process.returncode
    exit_code = None if timed_out or returncode is None or returncode < 0 else returncode
    return RunResult(
        stdout=_decode(stdout_chunks),
        stderr=_decode(stderr_chunks),
        exit_code=exit_code,
        timed_out=timed_out,
    )

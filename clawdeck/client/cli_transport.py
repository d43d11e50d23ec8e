"""CLI transport: runs the local controller binary as a subprocess.

Default transport for self-hosted installations where the ``openclaw``
binary lives on the same machine as the panel.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from collections.abc import Awaitable, Callable, Mapping
from pathlib import Path
from typing import Any

import httpx

from clawdeck.client.base import (
    CONTROLLER_BIN_NAME,
    DEFAULT_TIMEOUT_SECONDS,
    RPC_GRACE_SECONDS,
    ControllerClient,
    RunResult,
    TransportMode,
)
from clawdeck.client.errors import (
    CommandTimeoutError,
    ExecutionError,
    OutputParseError,
    SpawnError,
)
from clawdeck.client.executor import execute
from clawdeck.client.output import parse_json_output
from clawdeck.config import paths

logger = logging.getLogger("clawdeck.client.cli_transport")

SPAWN_FAILURE_EXIT_CODE = 127
# The controller only honours --timeout for calls longer than its own default.
RPC_TIMEOUT_FLAG_THRESHOLD_SECONDS = 10.0

Executor = Callable[..., Awaitable[RunResult]]


def _list_names(directory: Path) -> list[str]:
    return sorted(entry.name for entry in directory.iterdir())


class CliTransport(ControllerClient):
    """Controller client backed by subprocess execution."""

    def __init__(
        self,
        binary: str | None = None,
        *,
        executor: Executor = execute,
        gateway_url: str | None = None,
    ) -> None:
        self._binary = binary
        self._executor = executor
        self._gateway_url = gateway_url

    @property
    def transport_mode(self) -> TransportMode:
        return TransportMode.CLI

    @property
    def binary(self) -> str:
        if self._binary is None:
            self._binary = paths.resolve_controller_bin()
        return self._binary

    def _env(self) -> dict[str, str]:
        env = dict(os.environ)
        env.update(paths.controller_env())
        env["NO_COLOR"] = "1"
        return env

    def _describe(self, args: list[str]) -> str:
        return " ".join([CONTROLLER_BIN_NAME, *args])

    async def _execute(self, args: list[str], timeout_seconds: float, stdin: str | None = None) -> RunResult:
        return await self._executor(
            self.binary,
            args,
            env=self._env(),
            stdin=stdin,
            timeout_seconds=timeout_seconds,
        )

    async def run(
        self,
        args: list[str],
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        stdin: str | None = None,
    ) -> str:
        result = await self._execute(list(args), timeout_seconds, stdin)
        if result.timed_out:
            raise CommandTimeoutError(
                f"Command timed out after {timeout_seconds:g}s: {self._describe(args)}",
                stdout=result.stdout,
                stderr=result.stderr,
            )
        if result.exit_code != 0:
            detail = result.stderr.strip() or result.stdout.strip()
            exit_label = result.exit_code if result.exit_code is not None else "signal"
            raise ExecutionError(
                f"Command failed (exit {exit_label}): {detail}",
                exit_code=result.exit_code,
                stdout=result.stdout,
                stderr=result.stderr,
            )
        return result.stdout

    async def run_json(self, args: list[str], timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS) -> Any:
        json_args = [*args, "--json"]
        context = self._describe(json_args)
        try:
            stdout = await self.run(json_args, timeout_seconds)
        except ExecutionError as exc:
            # Some commands exit non-zero while still printing a usable JSON report.
            if isinstance(exc, (CommandTimeoutError, SpawnError)) or not exc.stdout.strip():
                raise
            try:
                return parse_json_output(exc.stdout, context)
            except OutputParseError:
                raise exc from None
        return parse_json_output(stdout, context)

    async def run_capture(self, args: list[str], timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS) -> RunResult:
        try:
            return await self._execute(list(args), timeout_seconds)
        except Exception as exc:
            logger.warning("Controller capture run failed before completion: %s", exc)
            return RunResult(stdout="", stderr=str(exc), exit_code=SPAWN_FAILURE_EXIT_CODE)

    async def gateway_rpc(
        self,
        method: str,
        params: Mapping[str, Any] | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> Any:
        args = ["gateway", "call", method, "--json"]
        if params is not None:
            args += ["--params", json.dumps(dict(params))]
        if timeout_seconds > RPC_TIMEOUT_FLAG_THRESHOLD_SECONDS:
            args += ["--timeout", str(int(timeout_seconds * 1000))]
        stdout = await self.run(args, timeout_seconds + RPC_GRACE_SECONDS)
        return parse_json_output(stdout, f"{CONTROLLER_BIN_NAME} gateway call {method}")

    async def read_file(self, path: str) -> str:
        return await asyncio.to_thread(Path(path).read_text, encoding="utf-8")

    async def write_file(self, path: str, content: str) -> None:
        await asyncio.to_thread(Path(path).write_text, content, encoding="utf-8")

    async def readdir(self, path: str) -> list[str]:
        return await asyncio.to_thread(_list_names, Path(path))

    async def gateway_fetch(
        self,
        path: str,
        *,
        method: str = "GET",
        headers: Mapping[str, str] | None = None,
        content: str | bytes | None = None,
        timeout_seconds: float | None = None,
    ) -> httpx.Response:
        base_url = self._gateway_url or paths.resolve_gateway_url()
        timeout = httpx.Timeout(timeout_seconds if timeout_seconds is not None else DEFAULT_TIMEOUT_SECONDS)
        async with httpx.AsyncClient(timeout=timeout) as client:
            return await client.request(method, f"{base_url}{path}", headers=headers, content=content)

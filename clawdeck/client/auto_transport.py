"""Auto transport: prefers the Gateway over HTTP, falls back to the CLI.

The Gateway root is probed at most once per interval (60s while stable, 15s
while recovering from an HTTP failure). Any HTTP-path failure flips the
preference to CLI, enters recovery mode and retries the same operation once
over the CLI transport.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any, TypeVar

import httpx

from clawdeck.client.base import (
    DEFAULT_TIMEOUT_SECONDS,
    ControllerClient,
    RunResult,
    TransportMode,
)
from clawdeck.client.cli_transport import CliTransport
from clawdeck.client.http_transport import HttpTransport

logger = logging.getLogger("clawdeck.client.auto_transport")

PROBE_INTERVAL_STABLE_SECONDS = 60.0
PROBE_INTERVAL_RECOVERY_SECONDS = 15.0
PROBE_TIMEOUT_SECONDS = 2.0

STATE_PREFER_HTTP = "stable-preferring-http"
STATE_PREFER_CLI = "stable-preferring-cli"
STATE_RECOVERING = "recovering"

T = TypeVar("T")


@dataclass
class ProbeState:
    """Mutable Gateway reachability state owned by one AutoTransport."""

    prefer_http: bool = False
    last_probe_at: float | None = None
    in_recovery: bool = False

    @property
    def name(self) -> str:
        if self.in_recovery:
            return STATE_RECOVERING
        return STATE_PREFER_HTTP if self.prefer_http else STATE_PREFER_CLI


class AutoTransport(ControllerClient):
    """Controller client that picks HTTP or CLI per call with failover."""

    def __init__(
        self,
        cli: CliTransport | None = None,
        http: HttpTransport | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        stable_interval_seconds: float = PROBE_INTERVAL_STABLE_SECONDS,
        recovery_interval_seconds: float = PROBE_INTERVAL_RECOVERY_SECONDS,
        probe_timeout_seconds: float = PROBE_TIMEOUT_SECONDS,
    ) -> None:
        self.cli = cli or CliTransport()
        self.http = http or HttpTransport()
        self._clock = clock
        self.stable_interval_seconds = stable_interval_seconds
        self.recovery_interval_seconds = recovery_interval_seconds
        self.probe_timeout_seconds = probe_timeout_seconds
        self._state = ProbeState()
        self._probe_task: asyncio.Future[None] | None = None
        self._probe_guard = threading.Lock()

    @property
    def transport_mode(self) -> TransportMode:
        return TransportMode.AUTO

    @property
    def probe_interval_seconds(self) -> float:
        if self._state.in_recovery:
            return self.recovery_interval_seconds
        return self.stable_interval_seconds

    def _probe_due(self) -> bool:
        last = self._state.last_probe_at
        return last is None or self._clock() - last >= self.probe_interval_seconds

    async def _run_probe(self) -> None:
        try:
            response = await self.http.gateway_fetch("/", timeout_seconds=self.probe_timeout_seconds)
            reachable = response.is_success
            self._state.prefer_http = reachable
            if reachable:
                self._state.in_recovery = False
            logger.debug("Gateway probe status=%s prefer_http=%s", response.status_code, reachable)
        except Exception as exc:
            self._state.prefer_http = False
            logger.debug("Gateway probe failed: %s", exc)
        finally:
            self._state.last_probe_at = self._clock()
            with self._probe_guard:
                self._probe_task = None

    async def probe(self) -> None:
        """Probe the Gateway if the interval elapsed, sharing any in-flight probe."""
        with self._probe_guard:
            task = self._probe_task
            if task is None:
                if not self._probe_due():
                    return
                task = asyncio.ensure_future(self._run_probe())
                self._probe_task = task
        # Shielded so a cancelled caller does not cancel the probe other callers await.
        await asyncio.shield(task)

    async def _pick(self) -> ControllerClient:
        await self.probe()
        return self.http if self._state.prefer_http else self.cli

    def _enter_recovery(self) -> None:
        self._state.prefer_http = False
        self._state.in_recovery = True
        self._state.last_probe_at = self._clock()

    async def _with_fallback(self, operation: str, call: Callable[[ControllerClient], Awaitable[T]]) -> T:
        primary = await self._pick()
        try:
            return await call(primary)
        except Exception as exc:
            if primary is not self.http:
                raise
            logger.warning("HTTP transport failed during %s, falling back to CLI: %s", operation, exc)
            self._enter_recovery()
            return await call(self.cli)

    def snapshot(self) -> dict[str, Any]:
        """Return probe/failover state for diagnostics endpoints."""
        last = self._state.last_probe_at
        return {
            "mode": self.transport_mode.value,
            "state": self._state.name,
            "prefer_http": self._state.prefer_http,
            "in_recovery": self._state.in_recovery,
            "probe_in_flight": self._probe_task is not None,
            "seconds_since_probe": None if last is None else round(self._clock() - last, 3),
            "probe_interval_seconds": self.probe_interval_seconds,
        }

    async def run(
        self,
        args: list[str],
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        stdin: str | None = None,
    ) -> str:
        return await self._with_fallback("run", lambda c: c.run(args, timeout_seconds, stdin))

    async def run_json(self, args: list[str], timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS) -> Any:
        return await self._with_fallback("run_json", lambda c: c.run_json(args, timeout_seconds))

    async def run_capture(self, args: list[str], timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS) -> RunResult:
        return await self._with_fallback("run_capture", lambda c: c.run_capture(args, timeout_seconds))

    async def gateway_rpc(
        self,
        method: str,
        params: Mapping[str, Any] | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> Any:
        return await self._with_fallback("gateway_rpc", lambda c: c.gateway_rpc(method, params, timeout_seconds))

    async def read_file(self, path: str) -> str:
        return await self._with_fallback("read_file", lambda c: c.read_file(path))

    async def write_file(self, path: str, content: str) -> None:
        await self._with_fallback("write_file", lambda c: c.write_file(path, content))

    async def readdir(self, path: str) -> list[str]:
        return await self._with_fallback("readdir", lambda c: c.readdir(path))

    async def gateway_fetch(
        self,
        path: str,
        *,
        method: str = "GET",
        headers: Mapping[str, str] | None = None,
        content: str | bytes | None = None,
        timeout_seconds: float | None = None,
    ) -> httpx.Response:
        return await self._with_fallback(
            "gateway_fetch",
            lambda c: c.gateway_fetch(
                path,
                method=method,
                headers=headers,
                content=content,
                timeout_seconds=timeout_seconds,
            ),
        )

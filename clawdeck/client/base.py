"""Unified controller client contract shared by every transport."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Protocol

import httpx

DEFAULT_TIMEOUT_SECONDS = 15.0
RPC_GRACE_SECONDS = 5.0
CONTROLLER_BIN_NAME = "openclaw"


class TransportMode(str, Enum):
    CLI = "cli"
    HTTP = "http"
    AUTO = "auto"


@dataclass(frozen=True)
class RunResult:
    """Captured output of one controller command.

    ``exit_code`` is ``None`` only when the process was killed by a signal,
    which includes being killed at its deadline (``timed_out`` is then set).
    """

    stdout: str
    stderr: str
    exit_code: int | None
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class ControllerClient(Protocol):
    """Operation set for reaching the controller over any transport."""

    @property
    def transport_mode(self) -> TransportMode:
        """Mode this client implements."""

    async def run(
        self,
        args: list[str],
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        stdin: str | None = None,
    ) -> str:
        """Run a controller command and return raw stdout."""

    async def run_json(self, args: list[str], timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS) -> Any:
        """Run a controller command with ``--json`` and return parsed output."""

    async def run_capture(self, args: list[str], timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS) -> RunResult:
        """Run a controller command capturing stdout, stderr and exit code. Never raises."""

    async def gateway_rpc(
        self,
        method: str,
        params: Mapping[str, Any] | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> Any:
        """Call a Gateway RPC method."""

    async def read_file(self, path: str) -> str:
        """Read a file from the controller filesystem."""

    async def write_file(self, path: str, content: str) -> None:
        """Write a file to the controller filesystem."""

    async def readdir(self, path: str) -> list[str]:
        """List directory entry names."""

    async def gateway_fetch(
        self,
        path: str,
        *,
        method: str = "GET",
        headers: Mapping[str, str] | None = None,
        content: str | bytes | None = None,
        timeout_seconds: float | None = None,
    ) -> httpx.Response:
        """Issue a raw HTTP request against the Gateway."""

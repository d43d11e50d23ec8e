"""HTTP transport: talks to the controller Gateway's tool invocation API.

Used for hosted deployments where the panel reaches a Gateway container over
the network, and by self-hosted users who prefer HTTP over subprocesses.

Primary endpoint: POST {gateway}/tools/invoke
Auth: Authorization: Bearer <OPENCLAW_GATEWAY_TOKEN>
"""

from __future__ import annotations

import asyncio
import json
import logging
import shlex
from collections.abc import Mapping
from dataclasses import dataclass
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
    ConfigurationError,
    GatewayNetworkError,
    GatewayRemoteError,
    GatewayTimeoutError,
    OutputParseError,
    UnsupportedOperationError,
)
from clawdeck.client.output import parse_json_output
from clawdeck.config import paths

logger = logging.getLogger("clawdeck.client.http_transport")

INVOKE_PATH = "/tools/invoke"
TOOL_EXEC = "exec"
TOOL_READ = "read"
TOOL_WRITE = "write"

# RPC methods the Gateway exposes as native tools.
DIRECT_RPC_TOOLS: dict[str, str] = {
    "sessions.list": "sessions_list",
}

EXEC_OUTPUT_FIELDS = ("output", "stdout", "result")
READ_OUTPUT_FIELDS = ("content", "output")

TOOL_OUTPUT_TEXT = "text"
TOOL_OUTPUT_FIELD = "field"
TOOL_OUTPUT_STRUCTURED = "structured"

CAPTURE_FAILURE_EXIT_CODE = 1


@dataclass(frozen=True)
class ToolOutput:
    """Normalized tool invocation result.

    ``kind`` tags where ``text`` came from: a bare string response
    (``text``), one of the output-bearing fields of an object response
    (``field``, with ``field`` naming it; the first non-empty one, else the
    first present but empty one), or the JSON serialization of an object
    carrying none of them (``structured``).
    """

    kind: str
    text: str
    field: str | None = None


def normalize_tool_output(payload: Any, fields: tuple[str, ...] = EXEC_OUTPUT_FIELDS) -> ToolOutput:
    if isinstance(payload, str):
        return ToolOutput(kind=TOOL_OUTPUT_TEXT, text=payload)
    if isinstance(payload, dict):
        empty_field: str | None = None
        for name in fields:
            value = payload.get(name)
            if isinstance(value, dict):
                nested = normalize_tool_output(value, fields)
                if nested.kind == TOOL_OUTPUT_STRUCTURED:
                    continue
                value = nested.text
            if not isinstance(value, str):
                continue
            if value:
                return ToolOutput(kind=TOOL_OUTPUT_FIELD, text=value, field=name)
            if empty_field is None:
                empty_field = name
        # An output field that is present but empty means the command printed nothing.
        if empty_field is not None:
            return ToolOutput(kind=TOOL_OUTPUT_FIELD, text="", field=empty_field)
    return ToolOutput(kind=TOOL_OUTPUT_STRUCTURED, text=json.dumps(payload))


def build_command(args: list[str], *, json_output: bool = False) -> str:
    """Render a controller invocation as a shell-safe command line."""
    argv = [CONTROLLER_BIN_NAME, *args]
    if json_output:
        argv.append("--json")
    return shlex.join(argv)


class HttpTransport(ControllerClient):
    """Controller client backed by the Gateway HTTP API."""

    def __init__(
        self,
        gateway_url: str | None = None,
        token: str | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._gateway_url = gateway_url.rstrip("/") if gateway_url else None
        self._token = token if token is not None else paths.resolve_gateway_token()
        self._transport = transport

    @property
    def transport_mode(self) -> TransportMode:
        return TransportMode.HTTP

    @property
    def gateway_url(self) -> str:
        if self._gateway_url is None:
            self._gateway_url = paths.resolve_gateway_url()
        if not self._gateway_url.startswith(("http://", "https://")):
            raise ConfigurationError(f"Gateway URL is not an http(s) URL: {self._gateway_url!r}")
        return self._gateway_url

    def _auth_headers(self) -> dict[str, str]:
        if not self._token:
            return {}
        return {"Authorization": f"Bearer {self._token}"}

    def _client(self, timeout_seconds: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=httpx.Timeout(timeout_seconds), transport=self._transport)

    async def _post_invoke(self, tool: str, args: Mapping[str, Any], timeout_seconds: float) -> Any:
        async with self._client(timeout_seconds) as client:
            response = await client.post(
                f"{self.gateway_url}{INVOKE_PATH}",
                json={"tool": tool, "args": dict(args)},
                headers={"Content-Type": "application/json", **self._auth_headers()},
            )
        if not response.is_success:
            body = response.text
            raise GatewayRemoteError(
                f"Gateway {INVOKE_PATH} {tool} returned {response.status_code}: {body}",
                status_code=response.status_code,
                body=body,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise OutputParseError(f"Gateway {INVOKE_PATH} {tool} returned invalid JSON") from exc

    async def invoke(
        self,
        tool: str,
        args: Mapping[str, Any] | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> Any:
        """Invoke a Gateway tool and return the decoded JSON response body."""
        try:
            return await asyncio.wait_for(self._post_invoke(tool, args or {}, timeout_seconds), timeout=timeout_seconds)
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            raise GatewayTimeoutError(f"Gateway {INVOKE_PATH} {tool} timed out after {timeout_seconds:g}s") from exc
        except httpx.HTTPError as exc:
            raise GatewayNetworkError(f"Gateway {INVOKE_PATH} {tool} failed: {exc}") from exc

    async def exec_command(self, command: str, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS) -> str:
        """Execute a command line inside the Gateway and return its output text."""
        logger.debug("Gateway exec: %s", command)
        payload = await self.invoke(TOOL_EXEC, {"command": command}, timeout_seconds)
        return normalize_tool_output(payload, EXEC_OUTPUT_FIELDS).text

    async def run(
        self,
        args: list[str],
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        stdin: str | None = None,
    ) -> str:
        if stdin is not None:
            raise UnsupportedOperationError("Piping stdin is not supported over the Gateway exec tool")
        return await self.exec_command(build_command(args), timeout_seconds)

    async def run_json(self, args: list[str], timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS) -> Any:
        command = build_command(args, json_output=True)
        raw = await self.exec_command(command, timeout_seconds)
        return parse_json_output(raw, command)

    async def run_capture(self, args: list[str], timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS) -> RunResult:
        try:
            stdout = await self.exec_command(build_command(args), timeout_seconds)
        except Exception as exc:
            return RunResult(stdout="", stderr=str(exc), exit_code=CAPTURE_FAILURE_EXIT_CODE)
        return RunResult(stdout=stdout, stderr="", exit_code=0)

    async def gateway_rpc(
        self,
        method: str,
        params: Mapping[str, Any] | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> Any:
        tool = DIRECT_RPC_TOOLS.get(method)
        if tool is not None:
            return await self.invoke(tool, dict(params or {}), timeout_seconds)

        args = ["gateway", "call", method, "--json"]
        if params is not None:
            args += ["--params", json.dumps(dict(params))]
        raw = await self.exec_command(build_command(args), timeout_seconds + RPC_GRACE_SECONDS)
        return parse_json_output(raw, f"gateway call {method}")

    async def read_file(self, path: str) -> str:
        payload = await self.invoke(TOOL_READ, {"path": path})
        output = normalize_tool_output(payload, READ_OUTPUT_FIELDS)
        if output.kind == TOOL_OUTPUT_STRUCTURED:
            return ""
        return output.text

    async def write_file(self, path: str, content: str) -> None:
        await self.invoke(TOOL_WRITE, {"path": path, "content": content})

    async def readdir(self, path: str) -> list[str]:
        raw = await self.exec_command(shlex.join(["ls", "-1", path]))
        return [line for line in raw.splitlines() if line]

    async def gateway_fetch(
        self,
        path: str,
        *,
        method: str = "GET",
        headers: Mapping[str, str] | None = None,
        content: str | bytes | None = None,
        timeout_seconds: float | None = None,
    ) -> httpx.Response:
        deadline = timeout_seconds if timeout_seconds is not None else DEFAULT_TIMEOUT_SECONDS
        merged_headers = {**dict(headers or {}), **self._auth_headers()}

        async def _request() -> httpx.Response:
            async with self._client(deadline) as client:
                return await client.request(method, f"{self.gateway_url}{path}", headers=merged_headers, content=content)

        try:
            return await asyncio.wait_for(_request(), timeout=deadline)
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            raise GatewayTimeoutError(f"Gateway {method} {path} timed out after {deadline:g}s") from exc
        except httpx.HTTPError as exc:
            raise GatewayNetworkError(f"Gateway {method} {path} failed: {exc}") from exc

"""Primary controller entry points; server-side code should import from here.

Every call routes through the unified client singleton, which selects the
transport from OPENCLAW_TRANSPORT. Transport modules are internal and
should not be imported by API routes directly.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from clawdeck.client.base import DEFAULT_TIMEOUT_SECONDS, RunResult, TransportMode
from clawdeck.client.factory import get_client
from clawdeck.client.output import parse_json_output

__all__ = [
    "RunResult",
    "gateway_call",
    "parse_json_output",
    "run_cli",
    "run_cli_capture",
    "run_cli_json",
    "transport_status",
]


async def run_cli(args: list[str], timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS, stdin: str | None = None) -> str:
    return await get_client().run(args, timeout_seconds, stdin)


async def run_cli_json(args: list[str], timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS) -> Any:
    return await get_client().run_json(args, timeout_seconds)


async def run_cli_capture(args: list[str], timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS) -> RunResult:
    return await get_client().run_capture(args, timeout_seconds)


async def gateway_call(
    method: str,
    params: Mapping[str, Any] | None = None,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
) -> Any:
    return await get_client().gateway_rpc(method, params, timeout_seconds)


async def transport_status(*, probe: bool = False) -> dict[str, Any]:
    """Describe the active transport; in auto mode include its probe state.

    With ``probe=True`` an auto client checks the Gateway first when its
    probe interval has elapsed.
    """
    client = get_client()
    mode = client.transport_mode
    if mode is not TransportMode.AUTO:
        return {"mode": mode.value, "probe": None}
    if probe:
        await client.probe()
    return {"mode": mode.value, "probe": client.snapshot()}

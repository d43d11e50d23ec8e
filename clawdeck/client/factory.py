"""Process-wide controller client singleton.

The transport is selected via the OPENCLAW_TRANSPORT environment variable:

  "cli"  (default) spawns the controller binary and reads local files
  "http"           talks to the Gateway's /tools/invoke endpoint
  "auto"           prefers HTTP, falls back to CLI
"""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Mapping

from clawdeck.client.base import ControllerClient, TransportMode
from clawdeck.config.paths import ENV_TRANSPORT

logger = logging.getLogger("clawdeck.client.factory")

_client: ControllerClient | None = None
_client_lock = threading.Lock()


def resolve_transport_mode(environ: Mapping[str, str] | None = None) -> TransportMode:
    env = os.environ if environ is None else environ
    raw = (env.get(ENV_TRANSPORT) or TransportMode.CLI.value).strip().lower()
    try:
        return TransportMode(raw)
    except ValueError:
        logger.warning("Unknown %s=%r, using %s", ENV_TRANSPORT, raw, TransportMode.CLI.value)
        return TransportMode.CLI


def _build_client(mode: TransportMode) -> ControllerClient:
    # Only the selected mode's transport module is imported.
    if mode is TransportMode.HTTP:
        from clawdeck.client.http_transport import HttpTransport

        return HttpTransport()
    if mode is TransportMode.AUTO:
        from clawdeck.client.auto_transport import AutoTransport

        return AutoTransport()
    from clawdeck.client.cli_transport import CliTransport

    return CliTransport()


def get_client() -> ControllerClient:
    """Return the singleton controller client, constructing it on first use."""
    global _client
    with _client_lock:
        if _client is None:
            mode = resolve_transport_mode()
            _client = _build_client(mode)
            logger.info("Controller client initialized transport=%s", mode.value)
        return _client


def reset_client() -> None:
    """Discard the singleton so the next access re-resolves the transport (tests)."""
    global _client
    with _client_lock:
        _client = None

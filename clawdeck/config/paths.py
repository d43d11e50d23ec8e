"""Self-discovering path and endpoint resolution for the controller.

Controller home priority:
  1. OPENCLAW_HOME env var
  2. OPENCLAW_STATE_DIR env var (alias)
  3. $HOME/.openclaw

Binary path priority:
  1. OPENCLAW_BIN env var
  2. ``shutil.which("openclaw")``
  3. Common install locations
  4. Bare ``openclaw`` (left to PATH at spawn time)

Gateway URL priority:
  1. OPENCLAW_GATEWAY_URL env var
  2. gateway.port from openclaw.json -> http://127.0.0.1:{port}
  3. http://127.0.0.1:18789
"""

from __future__ import annotations

import json
import os
import shutil
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from clawdeck.client.base import CONTROLLER_BIN_NAME

ENV_HOME = "OPENCLAW_HOME"
ENV_STATE_DIR = "OPENCLAW_STATE_DIR"
ENV_BIN = "OPENCLAW_BIN"
ENV_GATEWAY_URL = "OPENCLAW_GATEWAY_URL"
ENV_GATEWAY_TOKEN = "OPENCLAW_GATEWAY_TOKEN"
ENV_TRANSPORT = "OPENCLAW_TRANSPORT"

CONFIG_FILENAME = "openclaw.json"
DEFAULT_GATEWAY_PORT = 18789
DEFAULT_GATEWAY_URL = f"http://127.0.0.1:{DEFAULT_GATEWAY_PORT}"


def _bin_candidates() -> list[Path]:
    home = Path.home()
    return [
        Path("/opt/homebrew/bin") / CONTROLLER_BIN_NAME,
        Path("/usr/local/bin") / CONTROLLER_BIN_NAME,
        Path("/usr/bin") / CONTROLLER_BIN_NAME,
        home / ".local" / "bin" / CONTROLLER_BIN_NAME,
        home / ".npm-global" / "bin" / CONTROLLER_BIN_NAME,
    ]


_cache: dict[str, str] = {}


def reset_path_cache() -> None:
    """Forget resolved values so the next lookup re-reads the environment."""
    _cache.clear()


def get_controller_home() -> Path:
    value = os.getenv(ENV_HOME) or os.getenv(ENV_STATE_DIR)
    if value:
        return Path(value)
    return Path.home() / ".openclaw"


def load_controller_config(path: Path | None = None) -> dict[str, Any]:
    """Load openclaw.json from the controller home or return an empty config."""
    config_path = path or get_controller_home() / CONFIG_FILENAME
    if not config_path.exists():
        return {}
    try:
        raw = json.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}
    if not isinstance(raw, dict):
        return {}
    return raw


def resolve_controller_bin() -> str:
    cached = _cache.get("bin")
    if cached:
        return cached

    resolved = os.getenv(ENV_BIN) or shutil.which(CONTROLLER_BIN_NAME)
    if not resolved:
        for candidate in _bin_candidates():
            if candidate.exists():
                resolved = str(candidate)
                break
    _cache["bin"] = resolved or CONTROLLER_BIN_NAME
    return _cache["bin"]


def resolve_gateway_url() -> str:
    cached = _cache.get("gateway_url")
    if cached:
        return cached

    url = os.getenv(ENV_GATEWAY_URL, "").strip()
    if not url:
        gateway = load_controller_config().get("gateway")
        port = gateway.get("port") if isinstance(gateway, dict) else None
        if isinstance(port, int) and not isinstance(port, bool) and port > 0:
            url = f"http://127.0.0.1:{port}"
        else:
            url = DEFAULT_GATEWAY_URL
    _cache["gateway_url"] = url.rstrip("/")
    return _cache["gateway_url"]


def get_gateway_port() -> int:
    try:
        port = urlparse(resolve_gateway_url()).port
    except ValueError:
        return DEFAULT_GATEWAY_PORT
    return port or DEFAULT_GATEWAY_PORT


def resolve_gateway_token() -> str:
    return os.getenv(ENV_GATEWAY_TOKEN, "").strip()


def controller_env() -> dict[str, str]:
    """Environment entries the controller binary itself relies on."""
    env: dict[str, str] = {}
    home = os.getenv(ENV_HOME) or os.getenv(ENV_STATE_DIR)
    if home:
        env[ENV_HOME] = home
    return env

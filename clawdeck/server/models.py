from typing import Any, Optional

from pydantic import BaseModel


class GatewayHealthResponse(BaseModel):
    status: str
    health: dict[str, Any]


class TransportStatusResponse(BaseModel):
    mode: str
    probe: Optional[dict[str, Any]] = None


class SessionListResponse(BaseModel):
    count: int
    sessions: list[dict[str, Any]]

"""Request/Response schemas for the FastAPI endpoints."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class CallbackData(BaseModel):
    model_config = {"extra": "allow"}

    uid: Optional[str] = None
    content: Optional[str] = None


class CallbackRequest(BaseModel):
    """WxPusher upstream message, e.g. ``{"action": "send_up_cmd", "data": {...}}``."""

    model_config = {"extra": "allow"}

    action: Optional[str] = None
    data: Optional[CallbackData] = None


class CallbackResponse(BaseModel):
    success: bool
    message: Optional[str] = None


class HealthResponse(BaseModel):
    status: str = "ok"
    timestamp: str
    version: str

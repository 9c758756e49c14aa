"""Small response models shared across routers."""

from __future__ import annotations

from pydantic import BaseModel


class LogoutResponse(BaseModel):
    message: str


class ActionResponse(BaseModel):
    success: bool
    message: str


class HealthResponse(BaseModel):
    db: bool
    redis: bool


class StatusResponse(BaseModel):
    total_users: int
    checked_in_today: int
    pending_leaves: int
    status: str

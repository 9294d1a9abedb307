"""Credential request/response schemas."""

from __future__ import annotations

from pydantic import BaseModel


class TokenRequest(BaseModel):
    token: str


class TokenStatus(BaseModel):
    configured: bool

"""Pydantic request/response schemas for API endpoints."""

from micampofresco.schemas.auth import (
    AccountListData,
    AccountOut,
    LoginRequest,
    RecoverRequest,
    RecoveryData,
    RegisterRequest,
    ResetRequest,
    SessionData,
)

__all__ = [
    # Requests
    "LoginRequest",
    "RecoverRequest",
    "RegisterRequest",
    "ResetRequest",
    # Responses
    "AccountListData",
    "AccountOut",
    "RecoveryData",
    "SessionData",
]

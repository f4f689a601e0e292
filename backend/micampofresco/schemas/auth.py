"""Auth API request/response schemas.

Request fields are optional strings on purpose: presence and format are
checked by AuthService so every client sees the same fail-fast order and
messages whichever entry point it uses. Bodies still reject unknown fields.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from micampofresco.core.notifications import Channel

_MAX_FIELD_LEN = 255


class RegisterRequest(BaseModel):
    """Request body for POST /auth/register."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, max_length=120)
    surname: str | None = Field(default=None, max_length=120)
    identifier: str | None = Field(default=None, max_length=_MAX_FIELD_LEN)
    phone: str | None = Field(default=None, max_length=32)
    address: str | None = Field(default=None, max_length=500)
    password: str | None = Field(default=None, max_length=_MAX_FIELD_LEN)
    role: str | None = Field(default=None, max_length=32)


class LoginRequest(BaseModel):
    """Request body for POST /auth/login and POST /auth/admin/login."""

    model_config = ConfigDict(extra="forbid")

    identifier: str | None = Field(default=None, max_length=_MAX_FIELD_LEN)
    password: str | None = Field(default=None, max_length=_MAX_FIELD_LEN)


class RecoverRequest(BaseModel):
    """Request body for POST /auth/recover.

    With password: direct reset (when enabled). Without: a recovery code is
    sent over the requested channel.
    """

    model_config = ConfigDict(extra="forbid")

    identifier: str | None = Field(default=None, max_length=_MAX_FIELD_LEN)
    password: str | None = Field(default=None, max_length=_MAX_FIELD_LEN)
    channel: Literal["email", "whatsapp"] = Channel.EMAIL.value


class ResetRequest(BaseModel):
    """Request body for POST /auth/reset."""

    model_config = ConfigDict(extra="forbid")

    identifier: str | None = Field(default=None, max_length=_MAX_FIELD_LEN)
    code: str | int | None = None
    new_password: str | None = Field(default=None, max_length=_MAX_FIELD_LEN)


class AccountOut(BaseModel):
    """Public view of an account. Never carries the password hash."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    surname: str | None = None
    identifier: str
    phone: str | None = None
    address: str | None = None
    role: str
    created_at: datetime | None = None


class SessionData(BaseModel):
    """Payload of a successful register or login."""

    account: AccountOut
    expires_at: datetime | None = None


class RecoveryData(BaseModel):
    """Payload of a recovery code request (code only in development)."""

    code: str | None = None


class AccountListData(BaseModel):
    """Payload of GET /auth/users."""

    accounts: list[AccountOut]
    total: int

"""Recovery code model - password recovery ledger.

Stores one row per issued recovery code. Only the SHA-256 hash of the
6-digit code is persisted. Issuing a new code deletes older rows for the
same identifier; a redeemed row is kept with used=True so replays are
reported as such.
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, Integer, String, func, text
from sqlalchemy.orm import Mapped, mapped_column

from micampofresco.models.base import Base


class RecoveryCode(Base):
    """Issued password recovery code.

    Attributes:
        id: Integer primary key.
        identifier: Normalized account identifier (lookup key, no FK).
        account_id: Account the code was issued for.
        code_hash: SHA-256 hex digest of the plain code.
        expires_at: Code expiry timestamp.
        used: Whether the code has been redeemed.
        created_at: Issue timestamp; the newest row is authoritative.
    """

    __tablename__ = "recovery_codes"
    __table_args__ = (
        Index("ix_recovery_codes_identifier_created_at", "identifier", "created_at"),
    )

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    identifier: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    account_id: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )
    code_hash: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    used: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

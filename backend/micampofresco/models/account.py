"""Account model - credential store.

One row per registered buyer, vendor or administrator. The identifier
(email or phone) is the login handle and is unique after normalization.
"""

from enum import StrEnum

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from micampofresco.models.base import Base, TimestampMixin


class Role(StrEnum):
    """Canonical account roles."""

    USER = "user"
    VENDOR = "vendor"
    ADMINISTRATOR = "administrator"


DEFAULT_ROLE = Role.USER


class Account(Base, TimestampMixin):
    """Registered account.

    Attributes:
        id: Integer primary key, assigned by the database.
        name: Given name.
        surname: Family name (optional).
        identifier: Normalized email or phone used to sign in. Unique.
        phone: Optional phone for WhatsApp delivery. Unique when present.
        address: Delivery address (optional).
        password_hash: bcrypt hash. Never leaves the store layer.
        role: One of Role. Defaults to "user".
        created_at: Account creation timestamp (from TimestampMixin).
        updated_at: Last modification timestamp (from TimestampMixin).
    """

    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    name: Mapped[str] = mapped_column(
        String(120),
        nullable=False,
    )
    surname: Mapped[str | None] = mapped_column(
        String(120),
        nullable=True,
    )
    identifier: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )
    phone: Mapped[str | None] = mapped_column(
        String(20),
        unique=True,
        nullable=True,
    )
    address: Mapped[str | None] = mapped_column(
        Text(),
        nullable=True,
    )
    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=DEFAULT_ROLE.value,
        server_default=DEFAULT_ROLE.value,
    )

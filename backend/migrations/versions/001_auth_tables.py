"""Create auth tables: accounts, recovery_codes.

Revision ID: 001_auth_tables
Revises:
Create Date: 2026-10-18

- accounts: credential store, identifier and phone unique
- recovery_codes: password recovery ledger (hashed 6-digit codes)
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "001_auth_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # =========================================================================
    # accounts
    # =========================================================================
    op.create_table(
        "accounts",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("surname", sa.String(120), nullable=True),
        sa.Column("identifier", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(20), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column(
            "role",
            sa.String(20),
            server_default="user",
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.UniqueConstraint("identifier", name="uq_accounts_identifier"),
        sa.UniqueConstraint("phone", name="uq_accounts_phone"),
        sa.CheckConstraint(
            "role IN ('user', 'vendor', 'administrator')",
            name="ck_accounts_role",
        ),
    )

    # =========================================================================
    # recovery_codes
    # =========================================================================
    op.create_table(
        "recovery_codes",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("identifier", sa.String(255), nullable=False),
        sa.Column("account_id", sa.Integer(), nullable=False),
        sa.Column("code_hash", sa.String(64), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "used",
            sa.Boolean(),
            server_default=sa.text("false"),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index(
        "ix_recovery_codes_identifier_created_at",
        "recovery_codes",
        ["identifier", "created_at"],
    )


def downgrade() -> None:
    op.drop_index("ix_recovery_codes_identifier_created_at", table_name="recovery_codes")
    op.drop_table("recovery_codes")
    op.drop_table("accounts")

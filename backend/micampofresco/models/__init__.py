"""SQLAlchemy ORM models for MiCampoFresco auth.

All models are exported from this module for convenient imports:
    from micampofresco.models import Account, RecoveryCode

- account.py: Account, Role
- recovery_code.py: RecoveryCode
"""

from micampofresco.models.account import DEFAULT_ROLE, Account, Role
from micampofresco.models.base import Base, TimestampMixin
from micampofresco.models.recovery_code import RecoveryCode

__all__ = [
    # Base classes
    "Base",
    "TimestampMixin",
    # Auth tables
    "Account",
    "RecoveryCode",
    # Enumerations
    "Role",
    "DEFAULT_ROLE",
]

"""Shared dependencies for API endpoints.

Wires the auth service to its collaborators and authenticates requests
from the Authorization header.

WHY DEPENDENCY INJECTION:
- Consistent auth across all endpoints
- Easy to swap implementations (database → memory)
- Testable with overridden dependencies
"""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from micampofresco.core.config import settings
from micampofresco.core.database import get_db
from micampofresco.core.errors import ForbiddenError, UnauthorizedError
from micampofresco.core.tokens import TokenClaims, TokenContext, get_token_issuer
from micampofresco.models.account import Role
from micampofresco.repositories.account_repository import AccountStore, SqlAccountStore
from micampofresco.repositories.recovery_ledger import (
    RecoveryLedger,
    SqlRecoveryLedger,
    get_memory_ledger,
)
from micampofresco.services.auth_service import AuthService

DbSession = Annotated[AsyncSession, Depends(get_db)]

_BEARER_PREFIX = "Bearer "


def get_account_store(db: DbSession) -> AccountStore:
    """Credential store bound to the request's session."""
    return SqlAccountStore(db)


def get_recovery_ledger(db: DbSession) -> RecoveryLedger:
    """Recovery ledger selected by RECOVERY_LEDGER_BACKEND.

    The database ledger shares the request's session with the account
    store, so a redemption's password update and mark-used commit together.
    """
    if settings.recovery_ledger_backend == "memory":
        return get_memory_ledger()
    return SqlRecoveryLedger(db)


def get_auth_service(
    accounts: Annotated[AccountStore, Depends(get_account_store)],
    ledger: Annotated[RecoveryLedger, Depends(get_recovery_ledger)],
) -> AuthService:
    """Auth service for one request."""
    return AuthService(accounts, ledger)


def get_current_claims(request: Request) -> TokenClaims:
    """Authenticate the request from its bearer token.

    Tokens from either issuing context are accepted; both share the secret,
    issuer and audience, only their lifetime differs.

    Args:
        request: HTTP request (injected by FastAPI).

    Returns:
        Verified token claims.

    Raises:
        UnauthorizedError: Header missing or not a Bearer credential.
        TokenExpiredError: Token past its expiry.
        TokenInvalidError: Token malformed or signature invalid.
    """
    header = request.headers.get("Authorization")
    if not header:
        raise UnauthorizedError("Token not provided")
    if not header.startswith(_BEARER_PREFIX) or not header[len(_BEARER_PREFIX) :].strip():
        raise UnauthorizedError("Invalid token format. Use: Bearer <token>")

    token = header[len(_BEARER_PREFIX) :].strip()
    return get_token_issuer(TokenContext.SESSION).verify(token)


def require_administrator(
    claims: Annotated[TokenClaims, Depends(get_current_claims)],
) -> TokenClaims:
    """Authenticate the request and demand the administrator role.

    Raises:
        ForbiddenError: Authenticated, but not an administrator.
    """
    if claims.role != Role.ADMINISTRATOR:
        raise ForbiddenError("Administrator access required")
    return claims


# Reusable type aliases for dependency injection
AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
CurrentClaims = Annotated[TokenClaims, Depends(get_current_claims)]
AdminClaims = Annotated[TokenClaims, Depends(require_administrator)]

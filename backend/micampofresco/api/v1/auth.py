"""Authentication endpoints.

register, login, admin login, password recovery (request and redeem),
logout, current account and account listing.

Security considerations:
- login: unknown identifier and wrong password are indistinguishable
- recover: same response whether or not the identifier is registered
- recovery codes are never returned outside development
- tokens are stateless; logout is an acknowledgement only
"""

from fastapi import APIRouter, Request

from micampofresco.api.deps import AdminClaims, AuthServiceDep, CurrentClaims
from micampofresco.core.config import settings
from micampofresco.core.errors import NotFoundError
from micampofresco.core.notifications import Channel
from micampofresco.core.rate_limiting import limiter
from micampofresco.core.responses import ApiResponse
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
from micampofresco.services.auth_service import AuthResult

router = APIRouter()


def _session_response(message: str, result: AuthResult) -> ApiResponse[SessionData]:
    return ApiResponse(
        message=message,
        data=SessionData(
            account=AccountOut.model_validate(result.account),
            expires_at=result.expires_at,
        ),
        token=result.token,
    )


# ===================================================================
# POST /auth/register
# ===================================================================


@router.post("/register", status_code=201, response_model_exclude_none=True)
@limiter.limit(lambda: settings.rate_limit_register)
async def register(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: RegisterRequest,
    service: AuthServiceDep,
) -> ApiResponse[SessionData]:
    """Create an account and sign it in.

    Rate limit: RATE_LIMIT_REGISTER per IP.
    """
    result = await service.register(
        name=body.name,
        surname=body.surname,
        identifier=body.identifier,
        phone=body.phone,
        address=body.address,
        password=body.password,
        role=body.role,
    )
    return _session_response("Account registered successfully", result)


# ===================================================================
# POST /auth/login, POST /auth/admin/login
# ===================================================================


@router.post("/login", response_model_exclude_none=True)
@limiter.limit(lambda: settings.rate_limit_login)
async def login(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: LoginRequest,
    service: AuthServiceDep,
) -> ApiResponse[SessionData]:
    """Sign in with identifier and password.

    Rate limit: RATE_LIMIT_LOGIN per IP.
    """
    result = await service.login(body.identifier, body.password)
    return _session_response("Signed in successfully", result)


@router.post("/admin/login", response_model_exclude_none=True)
@limiter.limit(lambda: settings.rate_limit_login)
async def admin_login(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: LoginRequest,
    service: AuthServiceDep,
) -> ApiResponse[SessionData]:
    """Back-office sign-in. Administrators only, longer-lived token."""
    result = await service.login_admin(body.identifier, body.password)
    return _session_response("Signed in successfully", result)


# ===================================================================
# POST /auth/recover, POST /auth/reset
# ===================================================================


@router.post("/recover", response_model_exclude_none=True)
@limiter.limit(lambda: settings.rate_limit_recovery)
async def recover(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: RecoverRequest,
    service: AuthServiceDep,
) -> ApiResponse[RecoveryData]:
    """Start password recovery.

    A body carrying ``password`` asks for a direct reset, which is refused
    unless ALLOW_DIRECT_PASSWORD_RESET is set. Otherwise a recovery code
    is sent over ``channel``.
    """
    if body.password is not None:
        message = await service.reset_password_direct(body.identifier, body.password)
        return ApiResponse(message=message)

    outcome = await service.request_recovery_code(body.identifier, Channel(body.channel))
    data = RecoveryData(code=outcome.code) if outcome.code is not None else None
    return ApiResponse(message=outcome.message, data=data)


@router.post("/reset", response_model_exclude_none=True)
@limiter.limit(lambda: settings.rate_limit_recovery)
async def reset(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: ResetRequest,
    service: AuthServiceDep,
) -> ApiResponse[None]:
    """Redeem a recovery code and set a new password."""
    code = None if body.code is None else str(body.code)
    message = await service.redeem_recovery(body.identifier, code, body.new_password)
    return ApiResponse(message=message)


# ===================================================================
# Authenticated endpoints
# ===================================================================


@router.post("/logout", response_model_exclude_none=True)
async def logout(_claims: CurrentClaims) -> ApiResponse[None]:
    """Acknowledge sign-out. The client discards its token."""
    return ApiResponse(message="Signed out successfully")


@router.get("/me", response_model_exclude_none=True)
async def me(claims: CurrentClaims, service: AuthServiceDep) -> ApiResponse[AccountOut]:
    """Current account."""
    account = await service.get_account(claims.account_id)
    if account is None:
        raise NotFoundError("Account", str(claims.account_id))
    return ApiResponse(message="Account retrieved", data=AccountOut.model_validate(account))


@router.get("/users", response_model_exclude_none=True)
async def list_users(
    _claims: AdminClaims, service: AuthServiceDep
) -> ApiResponse[AccountListData]:
    """All accounts, newest first. Administrators only."""
    accounts = await service.list_accounts()
    return ApiResponse(
        message="Accounts retrieved",
        data=AccountListData(
            accounts=[AccountOut.model_validate(a) for a in accounts],
            total=len(accounts),
        ),
    )

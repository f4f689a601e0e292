"""Rate limiting configuration using slowapi.

Security: Slows credential stuffing on login and abuse of the recovery
flow (each code request sends an email or WhatsApp message).

Authenticated requests are keyed on the bearer token subject so clients
behind a shared IP do not exhaust each other's budget. Everything else
falls back to IP-based keying.

Usage in routers:
    from micampofresco.core.rate_limiting import limiter

    @router.post("/login")
    @limiter.limit(lambda: settings.rate_limit_login)
    async def login(request: Request, ...):
        ...
"""

import jwt
from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from micampofresco.core.config import settings

_BEARER_PREFIX = "Bearer "


def _rate_limit_key_func(request: Request) -> str:
    """Get rate limit key from request.

    Key format:
    - Valid bearer token: "account:{sub}"
    - No/invalid token: "anon:{ip}"

    Args:
        request: The incoming request.

    Returns:
        Rate limit key string.
    """
    # Only the sub claim is needed for keying; full validation happens in
    # deps.py. Expired tokens are still good enough to identify the caller.
    header = request.headers.get("Authorization", "")
    if header.startswith(_BEARER_PREFIX):
        try:
            payload = jwt.decode(
                header[len(_BEARER_PREFIX) :].strip(),
                settings.auth_secret.get_secret_value(),
                algorithms=["HS256"],
                audience=settings.auth_audience,
                issuer=settings.auth_issuer,
                options={"verify_exp": False},
            )
            sub = str(payload["sub"])
            if sub.isdigit():
                return f"account:{sub}"
        except (jwt.InvalidTokenError, KeyError):
            pass

    return f"anon:{get_remote_address(request)}"


# Global limiter instance
# Configured with in-memory storage (suitable for single-instance deployment)
# For multi-instance, configure Redis storage via RATELIMIT_STORAGE_URL
limiter = Limiter(
    key_func=_rate_limit_key_func,
    enabled=settings.rate_limit_enabled,
)


def rate_limit_exceeded_handler(
    _request: Request,
    exc: RateLimitExceeded,
) -> Response:
    """Handle rate limit exceeded errors.

    Returns 429 Too Many Requests in the standard error envelope.

    Args:
        request: The incoming request.
        exc: The rate limit exception.

    Returns:
        JSONResponse with 429 status and retry-after header.
    """
    # Parse retry-after from exception detail (e.g., "5 per 15 minute")
    # Fallback to 60 seconds if parsing fails
    try:
        retry_after = str(exc.detail.split()[-1])
        int(retry_after.rstrip("s"))
    except (ValueError, AttributeError, IndexError):
        retry_after = "60"

    return JSONResponse(
        status_code=429,
        content={
            "success": False,
            "message": f"Too many requests: {exc.detail}",
            "code": "RATE_LIMITED",
        },
        headers={"Retry-After": retry_after},
    )

"""Bearer token issuance and verification.

HS256 JWTs carrying the account id (sub), identifier and role. Tokens are
stateless: there is no server-side revocation list, a token is valid
until its exp claim passes.

Two issuing contexts share the secret but differ in lifetime:
- session: storefront sign-in (ACCESS_TOKEN_TTL_MINUTES, default 1 hour)
- admin: back-office sign-in (ADMIN_TOKEN_TTL_MINUTES, default 24 hours)
"""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import StrEnum

import jwt

from micampofresco.core.config import settings
from micampofresco.core.errors import TokenExpiredError, TokenInvalidError
from micampofresco.models.account import Account

_ALGORITHM = "HS256"
_REQUIRED_CLAIMS = ["sub", "exp", "iat", "iss", "aud"]


class TokenContext(StrEnum):
    """Issuing context, selects the token lifetime."""

    SESSION = "session"
    ADMIN = "admin"


@dataclass(frozen=True)
class TokenClaims:
    """Decoded, verified token claims.

    Attributes:
        account_id: Account primary key (sub claim).
        identifier: Account identifier at issue time.
        role: Account role at issue time.
        issued_at: iat claim.
        expires_at: exp claim.
    """

    account_id: int
    identifier: str
    role: str
    issued_at: datetime
    expires_at: datetime


class TokenIssuer:
    """Signs and verifies bearer tokens for one issuing context.

    Args:
        secret: HMAC signing secret.
        expires_delta: Lifetime of issued tokens.
        issuer: iss claim value.
        audience: aud claim value.
    """

    def __init__(
        self,
        *,
        secret: str,
        expires_delta: timedelta,
        issuer: str,
        audience: str,
    ) -> None:
        self._secret = secret
        self._expires_delta = expires_delta
        self._issuer = issuer
        self._audience = audience

    @property
    def expires_delta(self) -> timedelta:
        """Lifetime of tokens issued by this issuer."""
        return self._expires_delta

    def issue(self, account: Account, *, expires_delta: timedelta | None = None) -> str:
        """Create a signed token for an account.

        Args:
            account: Account the token asserts.
            expires_delta: Override the issuer's lifetime. A negative value
                mints an already-expired token.

        Returns:
            Encoded JWT string.
        """
        now = datetime.now(UTC)
        payload = {
            # PyJWT requires sub to be a string
            "sub": str(account.id),
            "identifier": account.identifier,
            "role": account.role,
            "iss": self._issuer,
            "aud": self._audience,
            "iat": now,
            "exp": now + (expires_delta if expires_delta is not None else self._expires_delta),
        }
        return jwt.encode(payload, self._secret, algorithm=_ALGORITHM)

    def verify(self, token: str) -> TokenClaims:
        """Decode and verify a token.

        Args:
            token: Encoded JWT string.

        Returns:
            Verified claims.

        Raises:
            TokenExpiredError: Signature is valid but exp has passed.
            TokenInvalidError: Malformed token, bad signature, wrong
                issuer/audience, or missing claims.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[_ALGORITHM],
                audience=self._audience,
                issuer=self._issuer,
                options={"require": _REQUIRED_CLAIMS},
            )
        except jwt.ExpiredSignatureError as exc:
            raise TokenExpiredError() from exc
        except jwt.InvalidTokenError as exc:
            raise TokenInvalidError() from exc

        try:
            return TokenClaims(
                account_id=int(payload["sub"]),
                identifier=str(payload["identifier"]),
                role=str(payload["role"]),
                issued_at=datetime.fromtimestamp(payload["iat"], UTC),
                expires_at=datetime.fromtimestamp(payload["exp"], UTC),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise TokenInvalidError() from exc


def get_token_issuer(context: TokenContext = TokenContext.SESSION) -> TokenIssuer:
    """Build the issuer for a context from current settings.

    Settings are read on every call so tests can override them.
    """
    minutes = (
        settings.admin_token_ttl_minutes
        if context == TokenContext.ADMIN
        else settings.access_token_ttl_minutes
    )
    return TokenIssuer(
        secret=settings.auth_secret.get_secret_value(),
        expires_delta=timedelta(minutes=minutes),
        issuer=settings.auth_issuer,
        audience=settings.auth_audience,
    )

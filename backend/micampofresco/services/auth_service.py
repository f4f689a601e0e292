"""Auth service: registration, login and password recovery.

Composes the credential store, password hasher, recovery ledger, token
issuer and notification senders. Holds no state of its own; one instance
per request.

Recovery is two explicit operations:
- request_recovery_code: issue a one-time 6-digit code out of band
- reset_password_direct: overwrite the password without a code. Skips
  proof of possession of the identifier, so it is disabled unless
  ALLOW_DIRECT_PASSWORD_RESET is set.
"""

import hashlib
import hmac
import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from micampofresco.core.config import settings
from micampofresco.core.errors import (
    CodeAlreadyUsedError,
    CodeExpiredError,
    ConflictError,
    ForbiddenError,
    InvalidCodeError,
    InvalidCredentialsError,
    ValidationError,
)
from micampofresco.core.identifiers import (
    IdentifierKind,
    is_email,
    is_phone,
    normalize_identifier,
    normalize_optional_phone,
)
from micampofresco.core.notifications import (
    Channel,
    NotificationSender,
    get_notification_sender,
)
from micampofresco.core.passwords import (
    burn_verification_time,
    hash_password,
    validate_password,
    verify_password,
)
from micampofresco.core.tokens import TokenContext, TokenIssuer, get_token_issuer
from micampofresco.models.account import DEFAULT_ROLE, Account, Role
from micampofresco.repositories.account_repository import AccountStore
from micampofresco.repositories.recovery_ledger import RecoveryEntry, RecoveryLedger

logger = logging.getLogger(__name__)

RECOVERY_CODE_LENGTH = 6

# Same message whether or not the identifier belongs to an account
RECOVERY_REQUESTED_MSG = "If the account exists, a recovery code has been sent"
DIRECT_RESET_MSG = "If the account exists, its password has been updated"  # nosec B105
PASSWORD_RESET_MSG = "Password reset successfully"  # nosec B105


@dataclass(frozen=True)
class AuthResult:
    """Outcome of a successful register or login.

    Attributes:
        account: The authenticated account.
        token: Signed bearer token.
        expires_at: Token expiry.
    """

    account: Account
    token: str
    expires_at: datetime


@dataclass(frozen=True)
class RecoveryRequestResult:
    """Outcome of a recovery code request.

    Attributes:
        message: Generic, enumeration-safe message.
        code: Plain code, only set when EXPOSE_RECOVERY_CODE is on outside
            production and a code was actually issued.
    """

    message: str
    code: str | None = None


def coerce_role(role: str | None) -> Role:
    """Map a requested role onto the enumeration, defaulting to user."""
    if not role:
        return DEFAULT_ROLE
    try:
        return Role(role.strip().lower())
    except ValueError:
        return DEFAULT_ROLE


def generate_recovery_code() -> str:
    """Six random digits, first digit non-zero."""
    return str(100000 + secrets.randbelow(900000))


def hash_recovery_code(code: str) -> str:
    """SHA-256 hex digest of a recovery code (ledger storage form)."""
    return hashlib.sha256(code.encode()).hexdigest()


class AuthService:
    """Credential issuance and recovery operations.

    Args:
        accounts: Credential store.
        ledger: Recovery ledger.
        session_tokens: Issuer for storefront sessions. Defaults to the
            configured session context.
        admin_tokens: Issuer for back-office sessions. Defaults to the
            configured admin context.
        sender_for: Returns the notification sender for a channel.
    """

    def __init__(
        self,
        accounts: AccountStore,
        ledger: RecoveryLedger,
        *,
        session_tokens: TokenIssuer | None = None,
        admin_tokens: TokenIssuer | None = None,
        sender_for: Callable[[Channel], NotificationSender] = get_notification_sender,
    ) -> None:
        self._accounts = accounts
        self._ledger = ledger
        self._session_tokens = session_tokens or get_token_issuer(TokenContext.SESSION)
        self._admin_tokens = admin_tokens or get_token_issuer(TokenContext.ADMIN)
        self._sender_for = sender_for

    # -----------------------------------------------------------------------
    # Registration and login
    # -----------------------------------------------------------------------

    async def register(
        self,
        *,
        name: str | None,
        identifier: str | None,
        password: str | None,
        surname: str | None = None,
        phone: str | None = None,
        address: str | None = None,
        role: str | None = None,
    ) -> AuthResult:
        """Create an account and sign it in.

        Validation runs in a fixed order and stops at the first failure:
        name, identifier, password, phone. An unknown role is coerced to
        the default rather than rejected.

        Returns:
            AuthResult with the new account and a session token.

        Raises:
            ValidationError: Malformed or missing input.
            ConflictError: Identifier or phone already registered.
            StoreError: Persistence failure.
        """
        if not name or not name.strip():
            raise ValidationError("Name is required")
        normalized, kind = normalize_identifier(identifier)
        valid_password = validate_password(password)
        normalized_phone = normalize_optional_phone(phone)
        if normalized_phone is None and kind == IdentifierKind.PHONE:
            normalized_phone = normalized
        final_role = coerce_role(role)

        # Fast path only: the store's unique constraints are the guarantee.
        if await self._accounts.exists_by_identifier(normalized):
            raise ConflictError(
                code="IDENTIFIER_ALREADY_REGISTERED",
                message="The email or phone number is already registered",
            )
        if normalized_phone is not None:
            owner = await self._accounts.find_by_phone(normalized_phone)
            if owner is not None:
                raise ConflictError(
                    code="PHONE_ALREADY_REGISTERED",
                    message="The phone number is already registered",
                )

        account = await self._accounts.insert(
            name=name.strip(),
            surname=surname.strip() if surname and surname.strip() else None,
            identifier=normalized,
            phone=normalized_phone,
            address=address.strip() if address and address.strip() else None,
            password_hash=hash_password(valid_password),
            role=final_role.value,
        )
        logger.info("Account %s registered with role %s", account.id, account.role)
        return self._issue(account, self._session_tokens)

    async def login(self, identifier: str | None, password: str | None) -> AuthResult:
        """Verify credentials and issue a session token.

        Raises:
            ValidationError: Identifier or password missing.
            InvalidCredentialsError: Unknown identifier or wrong password
                (indistinguishable).
        """
        account = await self._authenticate(identifier, password)
        return self._issue(account, self._session_tokens)

    async def login_admin(
        self, identifier: str | None, password: str | None
    ) -> AuthResult:
        """Verify administrator credentials and issue a back-office token.

        A valid non-administrator account gets the same error as a wrong
        password.

        Raises:
            ValidationError: Identifier or password missing.
            InvalidCredentialsError: Bad credentials or not an administrator.
        """
        account = await self._authenticate(identifier, password)
        if account.role != Role.ADMINISTRATOR:
            logger.warning("Non-administrator account %s tried admin login", account.id)
            raise InvalidCredentialsError()
        return self._issue(account, self._admin_tokens)

    async def _authenticate(self, identifier: str | None, password: str | None) -> Account:
        if not identifier or not identifier.strip() or not password:
            raise ValidationError("Identifier and password are required")

        try:
            normalized, _ = normalize_identifier(identifier)
        except ValidationError:
            account = None
        else:
            account = await self._accounts.find_by_identifier(normalized)

        if account is None:
            if settings.auth_constant_time_login:
                burn_verification_time(password)
            raise InvalidCredentialsError()

        if not verify_password(password, account.password_hash):
            raise InvalidCredentialsError()

        return account

    @staticmethod
    def _issue(account: Account, issuer: TokenIssuer) -> AuthResult:
        return AuthResult(
            account=account,
            token=issuer.issue(account),
            expires_at=datetime.now(UTC) + issuer.expires_delta,
        )

    # -----------------------------------------------------------------------
    # Password recovery
    # -----------------------------------------------------------------------

    async def request_recovery_code(
        self,
        identifier: str | None,
        channel: Channel = Channel.EMAIL,
    ) -> RecoveryRequestResult:
        """Issue a recovery code and deliver it out of band.

        Unknown identifiers, and accounts with no destination on the
        requested channel, get the same response as a delivered code and no
        code is issued. A new code supersedes every earlier code for the
        identifier.

        Raises:
            ValidationError: Malformed identifier.
            DeliveryError: The sender failed.
            StoreError: Persistence failure.
        """
        normalized, _ = normalize_identifier(identifier)

        account = await self._accounts.find_by_identifier(normalized)
        if account is None:
            logger.info("Recovery requested for unknown identifier")
            return RecoveryRequestResult(message=RECOVERY_REQUESTED_MSG)

        destination = _destination_for(account, channel)
        if destination is None:
            logger.info(
                "Account %s has no %s destination, no code issued", account.id, channel
            )
            return RecoveryRequestResult(message=RECOVERY_REQUESTED_MSG)

        code = generate_recovery_code()
        await self._ledger.put(
            normalized,
            RecoveryEntry(
                identifier=normalized,
                account_id=account.id,
                code_hash=hash_recovery_code(code),
                expires_at=datetime.now(UTC)
                + timedelta(minutes=settings.recovery_code_ttl_minutes),
            ),
        )

        sender = self._sender_for(channel)
        await sender.send(destination, code)
        logger.info("Recovery code issued for account %s via %s", account.id, channel)

        if settings.expose_recovery_code and not settings.is_production:
            return RecoveryRequestResult(message=RECOVERY_REQUESTED_MSG, code=code)
        return RecoveryRequestResult(message=RECOVERY_REQUESTED_MSG)

    async def reset_password_direct(
        self, identifier: str | None, new_password: str | None
    ) -> str:
        """Overwrite an account's password without a recovery code.

        Returns:
            Generic message, identical for known and unknown identifiers.

        Raises:
            ForbiddenError: Direct reset is disabled.
            ValidationError: Malformed identifier or password.
        """
        if not settings.allow_direct_password_reset:
            raise ForbiddenError(
                "Direct password reset is disabled. Request a recovery code instead",
                code="DIRECT_RESET_DISABLED",
            )
        normalized, _ = normalize_identifier(identifier)
        valid_password = validate_password(new_password)

        account = await self._accounts.find_by_identifier(normalized)
        if account is not None:
            await self._accounts.update_password_hash(
                account.id,
                hash_password(valid_password),
            )
            logger.warning("Password for account %s reset without a code", account.id)
        return DIRECT_RESET_MSG

    async def redeem_recovery(
        self,
        identifier: str | None,
        code: str | None,
        new_password: str | None,
    ) -> str:
        """Redeem a recovery code and set a new password.

        Checks run in order: code matches, code unused, code unexpired.
        An expired code is purged. A redeemed code is kept, marked used,
        so replaying it is reported as CodeAlreadyUsedError.

        Returns:
            Success message.

        Raises:
            ValidationError: Malformed identifier, missing code, bad password.
            InvalidCodeError: No code on record, or the code does not match.
            CodeAlreadyUsedError: The code was already redeemed.
            CodeExpiredError: The code's window has passed.
        """
        normalized, _ = normalize_identifier(identifier)
        if code is None or not str(code).strip():
            raise ValidationError("Recovery code is required")
        valid_password = validate_password(new_password)

        entry = await self._ledger.get(normalized)
        if entry is None:
            raise InvalidCodeError()
        if not hmac.compare_digest(
            entry.code_hash, hash_recovery_code(str(code).strip())
        ):
            raise InvalidCodeError()
        if entry.used:
            raise CodeAlreadyUsedError()
        if entry.is_expired():
            await self._ledger.delete(normalized)
            raise CodeExpiredError()

        account = await self._accounts.find_by_id(entry.account_id)
        if account is None or account.identifier != normalized:
            raise InvalidCodeError()

        await self._accounts.update_password_hash(
            account.id,
            hash_password(valid_password),
        )
        await self._ledger.mark_used(normalized)
        logger.info("Password for account %s reset with a recovery code", account.id)
        return PASSWORD_RESET_MSG

    # -----------------------------------------------------------------------
    # Account lookups
    # -----------------------------------------------------------------------

    async def get_account(self, account_id: int) -> Account | None:
        """Fetch an account by id."""
        return await self._accounts.find_by_id(account_id)

    async def list_accounts(self) -> list[Account]:
        """All accounts, newest first."""
        return await self._accounts.list_accounts()


def _destination_for(account: Account, channel: Channel) -> str | None:
    """Where to deliver a code for an account on a channel."""
    if channel == Channel.EMAIL:
        return account.identifier if is_email(account.identifier) else None
    if is_phone(account.identifier):
        return account.identifier
    return account.phone

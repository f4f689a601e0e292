"""Password hashing and password rules.

bcrypt with a fixed cost factor (BCRYPT_ROUNDS, default 10). Hashes are
stored as text; plain passwords never leave this module's callers.
"""

from functools import lru_cache

import bcrypt

from micampofresco.core.config import settings
from micampofresco.core.errors import ValidationError

MIN_PASSWORD_LENGTH = 6

# bcrypt only reads the first 72 bytes of its input; longer inputs are
# rejected instead of silently truncated.
MAX_PASSWORD_BYTES = 72


def validate_password(password: str | None) -> str:
    """Check the password rules.

    Args:
        password: Plain-text password from the request.

    Returns:
        The password, unchanged.

    Raises:
        ValidationError: If the password is missing, shorter than 6
            characters, or longer than 72 bytes.
    """
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
        )
    if len(password.encode()) > MAX_PASSWORD_BYTES:
        raise ValidationError(
            f"Password must be at most {MAX_PASSWORD_BYTES} bytes"
        )
    return password


def hash_password(password: str, rounds: int | None = None) -> str:
    """Hash a plain-text password with bcrypt.

    Args:
        password: Plain-text password (already validated).
        rounds: Cost factor. Defaults to settings.bcrypt_rounds.

    Returns:
        bcrypt hash as text.
    """
    salt = bcrypt.gensalt(rounds=rounds or settings.bcrypt_rounds)
    return bcrypt.hashpw(password.encode(), salt).decode()


def verify_password(password: str, password_hash: str) -> bool:
    """Check a plain-text password against a stored bcrypt hash.

    Malformed stored hashes count as a mismatch.
    """
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except ValueError:
        return False


@lru_cache(maxsize=4)
def _dummy_hash(rounds: int) -> bytes:
    return bcrypt.hashpw(b"micampofresco-dummy-password", bcrypt.gensalt(rounds=rounds))


def burn_verification_time(password: str) -> None:
    """Run one bcrypt comparison whose result is discarded.

    Security: called on the unknown-account login path so that response
    time does not reveal whether the identifier exists. The dummy hash uses
    the configured cost factor so both paths cost the same.
    """
    bcrypt.checkpw(
        password.encode()[:MAX_PASSWORD_BYTES],
        _dummy_hash(settings.bcrypt_rounds),
    )

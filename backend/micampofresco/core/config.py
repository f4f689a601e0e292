"""Application configuration loaded from environment variables.

Settings for database, API, token issuance, password recovery and
notification providers. Uses pydantic-settings for validation and
.env file support.
"""

from typing import Literal

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Known insecure default password that must not be used in production
# Security: Runtime check in check_production_security() prevents use in production
_INSECURE_DEFAULT_PASSWORD = "micampofresco_dev_password"  # nosec B105

# Development signing secret; rejected in production like the password above
_INSECURE_DEFAULT_SECRET = "micampofresco-development-secret-do-not-use"  # nosec B105

# Minimum length for AUTH_SECRET in production (256 bits = 32 bytes)
_MIN_AUTH_SECRET_LENGTH = 32


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    database_host: str = "localhost"
    database_port: int = 5432
    database_name: str = "micampofresco"
    database_user: str = "micampofresco_user"
    database_password: str = _INSECURE_DEFAULT_PASSWORD

    # API
    # 0.0.0.0 binds to all network interfaces (required for Docker containers)
    api_host: str = "0.0.0.0"  # nosec B104
    api_port: int = 8000

    # CORS (Security)
    # Default allows the Vite dev server used by the storefront
    allowed_origins: list[str] = ["http://localhost:5173"]

    # Application
    environment: str = "development"
    log_level: str = "INFO"

    # Error responses: raw store/provider causes are only rendered when
    # this is set AND the environment is not production.
    expose_error_details: bool = False

    # Token issuance
    auth_secret: SecretStr = SecretStr(_INSECURE_DEFAULT_SECRET)
    auth_issuer: str = "micampofresco"
    auth_audience: str = "micampofresco"
    access_token_ttl_minutes: int = 60
    admin_token_ttl_minutes: int = 1440

    # Password hashing
    bcrypt_rounds: int = 10
    # Compare against a dummy hash when the account does not exist so that
    # "unknown identifier" and "wrong password" take the same time.
    auth_constant_time_login: bool = True

    # Password recovery
    recovery_code_ttl_minutes: int = 60
    recovery_ledger_backend: Literal["database", "memory"] = "database"
    # Direct reset (new password without a code) skips proof of possession
    # of the identifier. Off unless a legacy client needs it.
    allow_direct_password_reset: bool = False
    # Development convenience: echo the recovery code in the response body.
    expose_recovery_code: bool = False

    # Email (Resend)
    email_from: str = "no-reply@micampofresco.com"
    resend_api_key: SecretStr = SecretStr("")

    # WhatsApp (Twilio)
    twilio_account_sid: str = ""
    twilio_auth_token: SecretStr = SecretStr("")
    twilio_whatsapp_from: str = ""

    # Rate Limiting (Security)
    # Format: "count/period" (e.g., "10/minute", "100/hour")
    rate_limit_login: str = "5/15minute"
    rate_limit_register: str = "5/hour"
    rate_limit_recovery: str = "5/hour"
    rate_limit_enabled: bool = True  # Disable for testing

    @property
    def database_url(self) -> str:
        """Async database URL for SQLAlchemy."""
        return (
            f"postgresql+asyncpg://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @property
    def is_production(self) -> bool:
        """True when running with ENVIRONMENT=production."""
        return self.environment == "production"

    @model_validator(mode="after")
    def check_production_security(self) -> "Settings":
        """Validate production security requirements.

        Security: Prevents deployment with known insecure defaults.
        Checks:
        - Token and code lifetimes must be positive (all environments)
        - CORS must not use wildcard origin (all environments)
        - Database password must not be the default in production
        - AUTH_SECRET must not be the default and >= 32 chars in production
        - Recovery codes must never be echoed in production
        """
        for name in (
            "access_token_ttl_minutes",
            "admin_token_ttl_minutes",
            "recovery_code_ttl_minutes",
        ):
            value = getattr(self, name)
            if value <= 0:
                msg = f"{name.upper()} must be positive. Got: {value}"
                raise ValueError(msg)

        if "*" in self.allowed_origins:
            msg = (
                "ALLOWED_ORIGINS must not contain '*' (wildcard). "
                "Bearer-token clients must be listed explicitly."
            )
            raise ValueError(msg)

        if self.is_production:
            if self.database_password == _INSECURE_DEFAULT_PASSWORD:
                msg = (
                    "Cannot use default database password in production. "
                    "Set DATABASE_PASSWORD environment variable to a secure value."
                )
                raise ValueError(msg)

            secret_value = self.auth_secret.get_secret_value()
            if secret_value == _INSECURE_DEFAULT_SECRET:
                msg = "Cannot use the development AUTH_SECRET in production."
                raise ValueError(msg)
            if len(secret_value) < _MIN_AUTH_SECRET_LENGTH:
                msg = (
                    f"AUTH_SECRET must be at least {_MIN_AUTH_SECRET_LENGTH} "
                    "characters in production. Generate with: "
                    'python -c "import secrets; print(secrets.token_hex(32))"'
                )
                raise ValueError(msg)

            if self.expose_recovery_code:
                msg = "EXPOSE_RECOVERY_CODE must be false in production."
                raise ValueError(msg)

        return self


settings = Settings()

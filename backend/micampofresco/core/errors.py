"""API error classes.

Every failure in the auth core is an APIError subclass carrying a stable
machine-readable code, a human-readable message and the HTTP status the
boundary maps it to.

WHY CUSTOM ERROR CLASSES:
- Consistent error response format across all endpoints
- Easy to map to HTTP status codes in exception handlers
- Type-safe error handling in services/repositories
"""


class APIError(Exception):
    """Base class for API errors.

    All API errors have a code, message, and HTTP status.
    Subclasses set default status_code.

    Attributes:
        code: Machine-readable error code (e.g., "NOT_FOUND").
        message: Human-readable error message.
        status_code: HTTP status code to return.
        details: Optional list of additional error details.
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: list[dict] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class ValidationError(APIError):
    """Field validation failed (400).

    Use for missing or malformed input. Always recoverable by the caller
    resubmitting corrected data.
    """

    def __init__(
        self,
        message: str,
        details: list[dict] | None = None,
    ) -> None:
        super().__init__(
            code="VALIDATION_ERROR",
            message=message,
            status_code=400,
            details=details,
        )


class UnauthorizedError(APIError):
    """Authentication required (401).

    Use when no usable credentials were provided.
    """

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(
            code="UNAUTHORIZED",
            message=message,
            status_code=401,
        )


class InvalidCredentialsError(APIError):
    """Login failed (401).

    Intentionally non-specific: an unknown identifier and a wrong password
    produce the same code and message.
    """

    def __init__(self) -> None:
        super().__init__(
            code="INVALID_CREDENTIALS",
            message="Invalid credentials",
            status_code=401,
        )


class TokenExpiredError(APIError):
    """Bearer token signature is valid but its exp claim has passed (401)."""

    def __init__(self) -> None:
        super().__init__(
            code="TOKEN_EXPIRED",
            message="Token expired. Please sign in again",
            status_code=401,
        )


class TokenInvalidError(APIError):
    """Bearer token is malformed or its signature does not verify (401)."""

    def __init__(self) -> None:
        super().__init__(
            code="TOKEN_INVALID",
            message="Invalid token",
            status_code=401,
        )


class ForbiddenError(APIError):
    """Not allowed to perform the action (403).

    Use when auth is valid but the account lacks permission, or when an
    operation is disabled by configuration.
    """

    def __init__(self, message: str = "Access denied", code: str = "FORBIDDEN") -> None:
        super().__init__(
            code=code,
            message=message,
            status_code=403,
        )


class NotFoundError(APIError):
    """Resource not found (404)."""

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        if resource_id:
            message = f"{resource} with id '{resource_id}' not found"
        else:
            message = f"{resource} not found"
        super().__init__(
            code="NOT_FOUND",
            message=message,
            status_code=404,
        )


class ConflictError(APIError):
    """Duplicate or conflicting resource (409).

    Accepts custom code for specific conflict types
    (e.g., IDENTIFIER_ALREADY_REGISTERED).
    """

    def __init__(
        self,
        code: str,
        message: str,
        details: list[dict] | None = None,
    ) -> None:
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details,
        )


class InvalidCodeError(APIError):
    """Recovery code missing from the ledger or not matching (400)."""

    def __init__(self) -> None:
        super().__init__(
            code="INVALID_CODE",
            message="Invalid recovery code",
            status_code=400,
        )


class CodeAlreadyUsedError(APIError):
    """Recovery code was already redeemed (400)."""

    def __init__(self) -> None:
        super().__init__(
            code="CODE_ALREADY_USED",
            message="Recovery code already used",
            status_code=400,
        )


class CodeExpiredError(APIError):
    """Recovery code matched but its expiry window has passed (400)."""

    def __init__(self) -> None:
        super().__init__(
            code="CODE_EXPIRED",
            message="Recovery code expired",
            status_code=400,
        )


class StoreError(APIError):
    """Persistence failure (500).

    The driver message is kept in details for operators; the exception
    handler only renders it when error details are explicitly exposed.
    """

    def __init__(self, cause: str | None = None) -> None:
        super().__init__(
            code="STORE_ERROR",
            message="A storage error occurred",
            status_code=500,
            details=[{"cause": cause}] if cause else None,
        )


class DeliveryError(APIError):
    """Notification could not be delivered (500).

    Surfaced to the caller and never retried here.
    """

    def __init__(self, channel: str, cause: str | None = None) -> None:
        super().__init__(
            code="DELIVERY_ERROR",
            message="The recovery code could not be delivered",
            status_code=500,
            details=[{"channel": channel, "cause": cause}] if cause else None,
        )


class InternalError(APIError):
    """Unexpected server error (500).

    Use for unhandled exceptions. Never expose stack traces to clients.
    """

    def __init__(self, message: str = "An unexpected error occurred") -> None:
        super().__init__(
            code="INTERNAL_ERROR",
            message=message,
            status_code=500,
        )

"""Response envelope models.

Every endpoint answers with the same shape so the storefront can branch
on ``success`` alone:

    {"success": true, "message": "...", "data": {...}, "token": "..."}
    {"success": false, "message": "...", "code": "...", "details": [...]}
"""

from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Standard success envelope.

    ``data`` and ``token`` are omitted from the serialized body when unset
    (routes declare ``response_model_exclude_none=True``).

    Usage:
        @router.post("/login")
        async def login(...) -> ApiResponse[AccountOut]:
            result = await service.login(...)
            return ApiResponse(message="Signed in", data=..., token=result.token)
    """

    success: bool = True
    message: str
    data: T | None = None
    token: str | None = None


class ErrorResponse(BaseModel):
    """Standard error envelope.

    Attributes:
        success: Always False.
        message: Human-readable error message.
        code: Machine-readable error code (e.g., "INVALID_CODE").
        details: Optional list of field-level or diagnostic details.
    """

    success: bool = False
    message: str
    code: str
    details: list[dict] | None = None

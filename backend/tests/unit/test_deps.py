"""Tests for API dependencies: request authentication and wiring."""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from micampofresco.api.deps import (
    get_account_store,
    get_current_claims,
    get_recovery_ledger,
    require_administrator,
)
from micampofresco.core.config import settings
from micampofresco.core.errors import (
    ForbiddenError,
    TokenExpiredError,
    TokenInvalidError,
    UnauthorizedError,
)
from micampofresco.core.tokens import get_token_issuer
from micampofresco.models.account import Account
from micampofresco.repositories.account_repository import SqlAccountStore
from micampofresco.repositories.recovery_ledger import (
    InMemoryRecoveryLedger,
    SqlRecoveryLedger,
)


def _mock_request(authorization: str | None = None) -> MagicMock:
    request = MagicMock()
    request.headers = {"Authorization": authorization} if authorization else {}
    return request


def _token(role: str = "user", **kwargs) -> str:
    account = Account(id=3, name="Ana", identifier="ana@x.com", role=role)
    return get_token_issuer().issue(account, **kwargs)


class TestGetCurrentClaims:
    """Tests for get_current_claims."""

    def test_valid_bearer_token(self):
        claims = get_current_claims(_mock_request(f"Bearer {_token()}"))
        assert claims.account_id == 3

    def test_missing_header(self):
        with pytest.raises(UnauthorizedError) as exc_info:
            get_current_claims(_mock_request())
        assert exc_info.value.message == "Token not provided"

    @pytest.mark.parametrize("header", ["Token abc", "bearer abc", "Bearer ", "Basic dXNlcg=="])
    def test_wrong_format(self, header):
        with pytest.raises(UnauthorizedError) as exc_info:
            get_current_claims(_mock_request(header))
        assert exc_info.value.message == "Invalid token format. Use: Bearer <token>"

    def test_expired_token(self):
        token = _token(expires_delta=timedelta(seconds=-5))
        with pytest.raises(TokenExpiredError):
            get_current_claims(_mock_request(f"Bearer {token}"))

    def test_invalid_token(self):
        with pytest.raises(TokenInvalidError):
            get_current_claims(_mock_request("Bearer not.a.token"))


class TestRequireAdministrator:
    """Tests for require_administrator."""

    def test_administrator_passes(self):
        claims = get_token_issuer().verify(_token("administrator"))
        assert require_administrator(claims) is claims

    @pytest.mark.parametrize("role", ["user", "vendor"])
    def test_other_roles_forbidden(self, role):
        claims = get_token_issuer().verify(_token(role))
        with pytest.raises(ForbiddenError):
            require_administrator(claims)


class TestStoreWiring:
    """Tests for store selection."""

    def test_account_store_is_sql(self):
        assert isinstance(get_account_store(MagicMock()), SqlAccountStore)

    def test_ledger_backend_database(self):
        original = settings.recovery_ledger_backend
        settings.recovery_ledger_backend = "database"
        try:
            assert isinstance(get_recovery_ledger(MagicMock()), SqlRecoveryLedger)
        finally:
            settings.recovery_ledger_backend = original

    def test_ledger_backend_memory(self):
        original = settings.recovery_ledger_backend
        settings.recovery_ledger_backend = "memory"
        try:
            assert isinstance(get_recovery_ledger(MagicMock()), InMemoryRecoveryLedger)
        finally:
            settings.recovery_ledger_backend = original

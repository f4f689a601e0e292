"""Tests for the recovery ledger implementations.

InMemoryRecoveryLedger tests run everywhere. SqlRecoveryLedger tests
need PostgreSQL and skip otherwise.
"""

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import func, select

from micampofresco.models.recovery_code import RecoveryCode
from micampofresco.repositories.recovery_ledger import (
    InMemoryRecoveryLedger,
    RecoveryEntry,
    SqlRecoveryLedger,
    get_memory_ledger,
    reset_memory_ledger,
)


def _entry(
    identifier: str = "ana@x.com",
    *,
    code_hash: str = "a" * 64,
    expires_in: timedelta = timedelta(hours=1),
) -> RecoveryEntry:
    return RecoveryEntry(
        identifier=identifier,
        account_id=1,
        code_hash=code_hash,
        expires_at=datetime.now(UTC) + expires_in,
    )


class TestRecoveryEntry:
    """Tests for RecoveryEntry.is_expired."""

    def test_future_expiry_is_not_expired(self):
        assert not _entry().is_expired()

    def test_past_expiry_is_expired(self):
        assert _entry(expires_in=timedelta(seconds=-1)).is_expired()

    def test_explicit_now(self):
        entry = _entry()
        assert entry.is_expired(now=entry.expires_at + timedelta(seconds=1))


class TestInMemoryRecoveryLedger:
    """Tests for InMemoryRecoveryLedger."""

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self):
        assert await InMemoryRecoveryLedger().get("ana@x.com") is None

    @pytest.mark.asyncio
    async def test_put_then_get(self):
        ledger = InMemoryRecoveryLedger()
        entry = _entry()

        await ledger.put("ana@x.com", entry)

        assert await ledger.get("ana@x.com") is entry

    @pytest.mark.asyncio
    async def test_put_supersedes(self):
        ledger = InMemoryRecoveryLedger()
        await ledger.put("ana@x.com", _entry(code_hash="a" * 64))
        await ledger.put("ana@x.com", _entry(code_hash="b" * 64))

        entry = await ledger.get("ana@x.com")
        assert entry.code_hash == "b" * 64

    @pytest.mark.asyncio
    async def test_mark_used_keeps_entry(self):
        ledger = InMemoryRecoveryLedger()
        await ledger.put("ana@x.com", _entry())

        await ledger.mark_used("ana@x.com")

        entry = await ledger.get("ana@x.com")
        assert entry.used is True

    @pytest.mark.asyncio
    async def test_mark_used_missing_is_noop(self):
        await InMemoryRecoveryLedger().mark_used("ana@x.com")

    @pytest.mark.asyncio
    async def test_delete(self):
        ledger = InMemoryRecoveryLedger()
        await ledger.put("ana@x.com", _entry())

        await ledger.delete("ana@x.com")
        await ledger.delete("ana@x.com")

        assert await ledger.get("ana@x.com") is None


class TestMemoryLedgerSingleton:
    """Tests for get_memory_ledger / reset_memory_ledger."""

    def test_returns_same_instance(self):
        reset_memory_ledger()
        assert get_memory_ledger() is get_memory_ledger()

    @pytest.mark.asyncio
    async def test_reset_clears(self):
        reset_memory_ledger()
        ledger = get_memory_ledger()
        await ledger.put("ana@x.com", _entry())

        reset_memory_ledger()

        assert get_memory_ledger() is not ledger
        assert await get_memory_ledger().get("ana@x.com") is None


class TestSqlRecoveryLedger:
    """Tests for SqlRecoveryLedger (PostgreSQL)."""

    @pytest.mark.asyncio
    async def test_put_then_get(self, db_session):
        ledger = SqlRecoveryLedger(db_session)
        entry = _entry()

        await ledger.put("ana@x.com", entry)
        stored = await ledger.get("ana@x.com")

        assert stored is not None
        assert stored.code_hash == entry.code_hash
        assert stored.account_id == 1
        assert stored.used is False

    @pytest.mark.asyncio
    async def test_put_deletes_earlier_codes(self, db_session):
        ledger = SqlRecoveryLedger(db_session)
        await ledger.put("ana@x.com", _entry(code_hash="a" * 64))
        await ledger.put("ana@x.com", _entry(code_hash="b" * 64))

        count = await db_session.scalar(
            select(func.count()).select_from(RecoveryCode).where(
                RecoveryCode.identifier == "ana@x.com"
            )
        )
        assert count == 1
        assert (await ledger.get("ana@x.com")).code_hash == "b" * 64

    @pytest.mark.asyncio
    async def test_mark_used(self, db_session):
        ledger = SqlRecoveryLedger(db_session)
        await ledger.put("ana@x.com", _entry())

        await ledger.mark_used("ana@x.com")

        assert (await ledger.get("ana@x.com")).used is True

    @pytest.mark.asyncio
    async def test_delete(self, db_session):
        ledger = SqlRecoveryLedger(db_session)
        await ledger.put("ana@x.com", _entry())
        await db_session.commit()

        await ledger.delete("ana@x.com")

        assert await ledger.get("ana@x.com") is None

    @pytest.mark.asyncio
    async def test_delete_survives_request_rollback(self, db_session):
        ledger = SqlRecoveryLedger(db_session)
        await ledger.put("ana@x.com", _entry())
        await db_session.commit()

        await ledger.delete("ana@x.com")
        await db_session.rollback()

        assert await ledger.get("ana@x.com") is None

    @pytest.mark.asyncio
    async def test_delete_does_not_commit_request_session(self, db_session):
        ledger = SqlRecoveryLedger(db_session)
        await ledger.put("bob@x.com", _entry("bob@x.com"))

        await ledger.delete("ana@x.com")
        await db_session.rollback()

        assert await ledger.get("bob@x.com") is None

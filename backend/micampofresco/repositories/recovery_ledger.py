"""Recovery ledger: issued password recovery codes.

RecoveryLedger is the interface the auth service depends on. Entries are
keyed by normalized identifier; put() supersedes every earlier entry for
the same identifier, and get() returns the most recent one.

Implementations:
- SqlRecoveryLedger: recovery_codes table (durable)
- InMemoryRecoveryLedger: process-local dict (non-durable across restarts)

WHY IN-MEMORY IS AN OPTION:
- Codes live for one hour at most
- Losing them on restart only forces the user to request a new code
- Tests run the full recovery flow without a database
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from micampofresco.core.errors import StoreError
from micampofresco.models.recovery_code import RecoveryCode


@dataclass
class RecoveryEntry:
    """One issued recovery code.

    Attributes:
        identifier: Normalized identifier of the owning account.
        account_id: Owning account's id at issue time.
        code_hash: SHA-256 hex digest of the plain code.
        expires_at: When the code stops being redeemable.
        used: Set once, on successful redemption.
        created_at: Issue time.
    """

    identifier: str
    account_id: int
    code_hash: str
    expires_at: datetime
    used: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def is_expired(self, now: datetime | None = None) -> bool:
        """True once the current time is past expires_at."""
        return (now or datetime.now(UTC)) > self.expires_at


class RecoveryLedger(Protocol):
    """Operations the auth service needs from the recovery ledger."""

    async def put(self, identifier: str, entry: RecoveryEntry) -> None: ...

    async def get(self, identifier: str) -> RecoveryEntry | None: ...

    async def mark_used(self, identifier: str) -> None: ...

    async def delete(self, identifier: str) -> None: ...


class SqlRecoveryLedger:
    """RecoveryLedger backed by the recovery_codes table.

    Args:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def _latest(self, identifier: str) -> RecoveryCode | None:
        stmt = (
            select(RecoveryCode)
            .where(RecoveryCode.identifier == identifier)
            .order_by(RecoveryCode.created_at.desc(), RecoveryCode.id.desc())
            .limit(1)
        )
        result = await self._db.execute(stmt)
        return result.scalar_one_or_none()

    async def put(self, identifier: str, entry: RecoveryEntry) -> None:
        """Store a new code, deleting all earlier codes for the identifier."""
        try:
            await self._db.execute(
                delete(RecoveryCode).where(RecoveryCode.identifier == identifier)
            )
            self._db.add(
                RecoveryCode(
                    identifier=identifier,
                    account_id=entry.account_id,
                    code_hash=entry.code_hash,
                    expires_at=entry.expires_at,
                    used=entry.used,
                    created_at=entry.created_at,
                )
            )
            await self._db.flush()
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc

    async def get(self, identifier: str) -> RecoveryEntry | None:
        """Return the most recent code for the identifier, if any."""
        try:
            row = await self._latest(identifier)
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc
        if row is None:
            return None
        return RecoveryEntry(
            identifier=row.identifier,
            account_id=row.account_id,
            code_hash=row.code_hash,
            expires_at=row.expires_at,
            used=row.used,
            created_at=row.created_at,
        )

    async def mark_used(self, identifier: str) -> None:
        """Flag the most recent code for the identifier as redeemed."""
        try:
            row = await self._latest(identifier)
            if row is None:
                return
            await self._db.execute(
                update(RecoveryCode)
                .where(RecoveryCode.id == row.id)
                .values(used=True)
            )
            await self._db.flush()
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc

    async def delete(self, identifier: str) -> None:
        """Delete all codes for the identifier.

        Runs in its own short session on the same engine and commits there:
        the purge of an expired code must survive the rollback of the request
        session triggered by the CodeExpiredError that follows it. The request
        session itself is left uncommitted.
        """
        try:
            async with AsyncSession(bind=self._db.bind) as purge:
                await purge.execute(
                    delete(RecoveryCode).where(RecoveryCode.identifier == identifier)
                )
                await purge.commit()
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc


class InMemoryRecoveryLedger:
    """RecoveryLedger kept in a process-local dict.

    Holds a single entry per identifier: put() replaces the previous one,
    which is the same "newest wins, older unusable" outcome as the table.
    """

    def __init__(self) -> None:
        self._entries: dict[str, RecoveryEntry] = {}

    async def put(self, identifier: str, entry: RecoveryEntry) -> None:
        self._entries[identifier] = entry

    async def get(self, identifier: str) -> RecoveryEntry | None:
        return self._entries.get(identifier)

    async def mark_used(self, identifier: str) -> None:
        entry = self._entries.get(identifier)
        if entry is not None:
            entry.used = True

    async def delete(self, identifier: str) -> None:
        self._entries.pop(identifier, None)

    def clear(self) -> None:
        """Remove all entries (for testing)."""
        self._entries.clear()


# Singleton instance for RECOVERY_LEDGER_BACKEND=memory
_memory_ledger: InMemoryRecoveryLedger | None = None


def get_memory_ledger() -> InMemoryRecoveryLedger:
    """Get the process-wide in-memory ledger.

    Returns:
        The InMemoryRecoveryLedger singleton.
    """
    global _memory_ledger
    if _memory_ledger is None:
        _memory_ledger = InMemoryRecoveryLedger()
    return _memory_ledger


def reset_memory_ledger() -> None:
    """Reset the in-memory ledger singleton (for testing)."""
    global _memory_ledger
    if _memory_ledger is not None:
        _memory_ledger.clear()
    _memory_ledger = None

"""Credential store: account persistence.

AccountStore is the interface the auth service depends on. Two
implementations:
- SqlAccountStore: SQLAlchemy async session (production)
- InMemoryAccountStore: process-local dict (tests, local demos)

Callers pass identifiers already normalized (see core.identifiers).
Uniqueness of identifier and phone is enforced here, by the database
constraint in the SQL store, so a concurrent duplicate registration that
slips past the service's pre-check still fails with ConflictError.
"""

from datetime import UTC, datetime
from typing import Protocol

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from micampofresco.core.errors import ConflictError, StoreError
from micampofresco.models.account import Account

_DUPLICATE_CODE = "IDENTIFIER_ALREADY_REGISTERED"
_DUPLICATE_MSG = "The email or phone number is already registered"


class AccountStore(Protocol):
    """Operations the auth service needs from the credential store."""

    async def find_by_identifier(self, identifier: str) -> Account | None: ...

    async def find_by_id(self, account_id: int) -> Account | None: ...

    async def find_by_phone(self, phone: str) -> Account | None: ...

    async def exists_by_identifier(self, identifier: str) -> bool: ...

    async def insert(
        self,
        *,
        name: str,
        identifier: str,
        password_hash: str,
        role: str,
        surname: str | None = None,
        phone: str | None = None,
        address: str | None = None,
    ) -> Account: ...

    async def update_password_hash(self, account_id: int, password_hash: str) -> None: ...

    async def list_accounts(self) -> list[Account]: ...


class SqlAccountStore:
    """AccountStore backed by the accounts table.

    Methods flush but never commit; the request-scoped session from get_db
    owns the transaction boundary.

    Args:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def find_by_identifier(self, identifier: str) -> Account | None:
        """Fetch an account by normalized identifier.

        Returns:
            Account if found, None otherwise.
        """
        stmt = select(Account).where(Account.identifier == identifier)
        try:
            result = await self._db.execute(stmt)
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc
        return result.scalar_one_or_none()

    async def find_by_id(self, account_id: int) -> Account | None:
        """Fetch an account by primary key."""
        try:
            return await self._db.get(Account, account_id)
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc

    async def find_by_phone(self, phone: str) -> Account | None:
        """Fetch the account using a phone, as its phone or its identifier."""
        stmt = (
            select(Account)
            .where(or_(Account.phone == phone, Account.identifier == phone))
            .limit(1)
        )
        try:
            result = await self._db.execute(stmt)
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc
        return result.scalar_one_or_none()

    async def exists_by_identifier(self, identifier: str) -> bool:
        """True if an account with this identifier exists."""
        stmt = select(Account.id).where(Account.identifier == identifier)
        try:
            result = await self._db.execute(stmt)
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc
        return result.first() is not None

    async def insert(
        self,
        *,
        name: str,
        identifier: str,
        password_hash: str,
        role: str,
        surname: str | None = None,
        phone: str | None = None,
        address: str | None = None,
    ) -> Account:
        """Create a new account.

        Returns:
            Created Account with database-generated fields populated.

        Raises:
            ConflictError: If the identifier or phone already exists.
            StoreError: On any other database failure.
        """
        account = Account(
            name=name,
            surname=surname,
            identifier=identifier,
            phone=phone,
            address=address,
            password_hash=password_hash,
            role=role,
        )
        self._db.add(account)
        try:
            await self._db.flush()
            await self._db.refresh(account)
        except IntegrityError as exc:
            await self._db.rollback()
            raise ConflictError(code=_DUPLICATE_CODE, message=_DUPLICATE_MSG) from exc
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc
        return account

    async def update_password_hash(self, account_id: int, password_hash: str) -> None:
        """Overwrite an account's password hash.

        updated_at is bumped by the column's onupdate.
        """
        stmt = (
            update(Account)
            .where(Account.id == account_id)
            .values(password_hash=password_hash)
        )
        try:
            await self._db.execute(stmt)
            await self._db.flush()
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc

    async def list_accounts(self) -> list[Account]:
        """All accounts, newest first."""
        stmt = select(Account).order_by(Account.created_at.desc(), Account.id.desc())
        try:
            result = await self._db.execute(stmt)
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc
        return list(result.scalars().all())


class InMemoryAccountStore:
    """AccountStore kept in a process-local dict.

    Non-durable. Safe for single event loop usage (no awaits between
    read and write), not for multi-threaded access.
    """

    def __init__(self) -> None:
        self._accounts: dict[int, Account] = {}
        self._next_id = 1

    async def find_by_identifier(self, identifier: str) -> Account | None:
        return next(
            (a for a in self._accounts.values() if a.identifier == identifier),
            None,
        )

    async def find_by_id(self, account_id: int) -> Account | None:
        return self._accounts.get(account_id)

    async def find_by_phone(self, phone: str) -> Account | None:
        return next(
            (
                a
                for a in self._accounts.values()
                if a.phone == phone or a.identifier == phone
            ),
            None,
        )

    async def exists_by_identifier(self, identifier: str) -> bool:
        return await self.find_by_identifier(identifier) is not None

    async def insert(
        self,
        *,
        name: str,
        identifier: str,
        password_hash: str,
        role: str,
        surname: str | None = None,
        phone: str | None = None,
        address: str | None = None,
    ) -> Account:
        for existing in self._accounts.values():
            if existing.identifier == identifier or (
                phone is not None and existing.phone == phone
            ):
                raise ConflictError(code=_DUPLICATE_CODE, message=_DUPLICATE_MSG)

        now = datetime.now(UTC)
        account = Account(
            id=self._next_id,
            name=name,
            surname=surname,
            identifier=identifier,
            phone=phone,
            address=address,
            password_hash=password_hash,
            role=role,
            created_at=now,
            updated_at=now,
        )
        self._accounts[account.id] = account
        self._next_id += 1
        return account

    async def update_password_hash(self, account_id: int, password_hash: str) -> None:
        account = self._accounts.get(account_id)
        if account is None:
            return
        account.password_hash = password_hash
        account.updated_at = datetime.now(UTC)

    async def list_accounts(self) -> list[Account]:
        return sorted(
            self._accounts.values(),
            key=lambda a: (a.created_at, a.id),
            reverse=True,
        )

    def clear(self) -> None:
        """Remove all accounts (for testing)."""
        self._accounts.clear()
        self._next_id = 1

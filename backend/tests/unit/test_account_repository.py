"""Tests for the credential store implementations.

InMemoryAccountStore tests run everywhere. SqlAccountStore tests need
PostgreSQL and skip otherwise.
"""

import pytest

from micampofresco.core.errors import ConflictError
from micampofresco.repositories.account_repository import (
    InMemoryAccountStore,
    SqlAccountStore,
)

_HASH = "$2b$04$" + "x" * 53


async def _insert(store, identifier: str = "ana@x.com", **kwargs):
    return await store.insert(
        name=kwargs.pop("name", "Ana"),
        identifier=identifier,
        password_hash=kwargs.pop("password_hash", _HASH),
        role=kwargs.pop("role", "user"),
        **kwargs,
    )


class TestInMemoryAccountStore:
    """Tests for InMemoryAccountStore."""

    @pytest.mark.asyncio
    async def test_insert_assigns_ids_and_timestamps(self):
        store = InMemoryAccountStore()

        first = await _insert(store)
        second = await _insert(store, "luis@x.com")

        assert (first.id, second.id) == (1, 2)
        assert first.created_at is not None
        assert first.updated_at == first.created_at

    @pytest.mark.asyncio
    async def test_find_by_identifier_and_id(self):
        store = InMemoryAccountStore()
        account = await _insert(store)

        assert await store.find_by_identifier("ana@x.com") is account
        assert await store.find_by_id(account.id) is account
        assert await store.find_by_identifier("nobody@x.com") is None
        assert await store.find_by_id(99) is None

    @pytest.mark.asyncio
    async def test_find_by_phone_matches_phone_or_identifier(self):
        store = InMemoryAccountStore()
        by_phone = await _insert(store, phone="3001234567")
        by_identifier = await _insert(store, "3110000000")

        assert await store.find_by_phone("3001234567") is by_phone
        assert await store.find_by_phone("3110000000") is by_identifier
        assert await store.find_by_phone("3999999999") is None

    @pytest.mark.asyncio
    async def test_duplicate_identifier_conflicts(self):
        store = InMemoryAccountStore()
        await _insert(store)

        with pytest.raises(ConflictError):
            await _insert(store)

    @pytest.mark.asyncio
    async def test_duplicate_phone_conflicts(self):
        store = InMemoryAccountStore()
        await _insert(store, phone="3001234567")

        with pytest.raises(ConflictError):
            await _insert(store, "luis@x.com", phone="3001234567")

    @pytest.mark.asyncio
    async def test_update_password_hash(self):
        store = InMemoryAccountStore()
        account = await _insert(store)

        await store.update_password_hash(account.id, "$2b$04$new")

        assert (await store.find_by_id(account.id)).password_hash == "$2b$04$new"

    @pytest.mark.asyncio
    async def test_list_newest_first(self):
        store = InMemoryAccountStore()
        await _insert(store)
        await _insert(store, "luis@x.com")

        accounts = await store.list_accounts()

        assert [a.identifier for a in accounts] == ["luis@x.com", "ana@x.com"]

    @pytest.mark.asyncio
    async def test_clear(self):
        store = InMemoryAccountStore()
        await _insert(store)

        store.clear()

        assert await store.list_accounts() == []
        assert (await _insert(store)).id == 1


class TestSqlAccountStore:
    """Tests for SqlAccountStore (PostgreSQL)."""

    @pytest.mark.asyncio
    async def test_insert_and_find(self, db_session):
        store = SqlAccountStore(db_session)

        account = await _insert(store, surname="Pérez", phone="3001234567")

        assert account.id is not None
        assert account.created_at is not None
        assert (await store.find_by_identifier("ana@x.com")).id == account.id
        assert (await store.find_by_id(account.id)).surname == "Pérez"
        assert (await store.find_by_phone("3001234567")).id == account.id
        assert await store.exists_by_identifier("ana@x.com")
        assert not await store.exists_by_identifier("nobody@x.com")

    @pytest.mark.asyncio
    async def test_duplicate_identifier_conflicts(self, db_session):
        store = SqlAccountStore(db_session)
        await _insert(store)

        with pytest.raises(ConflictError) as exc_info:
            await _insert(store)
        assert exc_info.value.code == "IDENTIFIER_ALREADY_REGISTERED"

    @pytest.mark.asyncio
    async def test_update_password_hash(self, db_session):
        store = SqlAccountStore(db_session)
        account = await _insert(store)

        await store.update_password_hash(account.id, "$2b$04$new")
        await db_session.refresh(account)

        assert account.password_hash == "$2b$04$new"

    @pytest.mark.asyncio
    async def test_list_accounts(self, db_session):
        store = SqlAccountStore(db_session)
        await _insert(store)
        await _insert(store, "luis@x.com")

        accounts = await store.list_accounts()

        assert {a.identifier for a in accounts} == {"ana@x.com", "luis@x.com"}

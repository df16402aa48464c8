"""Tests for credential stores."""

import sqlite3
from datetime import UTC, datetime

import pytest

from keygate.auth.credentials import digest_credential
from keygate.auth.models import CredentialType, ScopedPermissions
from keygate.auth.store import InMemoryCredentialStore, SQLiteCredentialStore
from keygate.errors import GateError


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    """Each store adapter."""
    if request.param == "memory":
        return InMemoryCredentialStore()
    return SQLiteCredentialStore(str(tmp_path / "keygate.db"))


def _permissions(**kwargs) -> ScopedPermissions:
    return ScopedPermissions(**kwargs)


class TestCreate:
    """Tests for credential creation."""

    @pytest.mark.asyncio
    async def test_create_general(self, store):
        """Test general credentials are stored without permissions."""
        issued = await store.create("user-1", "server", CredentialType.GENERAL)
        credential = issued.credential

        assert issued.secret.startswith("ozw_")
        assert credential.prefix == "ozw_"
        assert credential.digest == digest_credential(issued.secret)
        assert credential.hint == issued.secret[-4:]
        assert credential.rate_limit == 100
        assert credential.permissions is None
        assert credential.revoked_at is None

    @pytest.mark.asyncio
    async def test_create_scoped(self, store):
        permissions = _permissions(allowed_tools=["search"], allowed_domains=["*.example.com"])
        issued = await store.create(
            "user-1", "widget", CredentialType.SCOPED, permissions, rate_limit=2
        )

        found = await store.find_by_digest(issued.credential.digest)
        assert found is not None
        assert found.type is CredentialType.SCOPED
        assert found.prefix == "ozw_scoped_"
        assert found.rate_limit == 2
        assert found.permissions == permissions

    @pytest.mark.asyncio
    async def test_scoped_requires_permissions(self, store):
        """Test scoped credentials without permissions are rejected."""
        with pytest.raises(GateError) as exc_info:
            await store.create("user-1", "widget", CredentialType.SCOPED)
        assert exc_info.value.code == "missing_permissions"
        assert exc_info.value.http_status == 400

    @pytest.mark.asyncio
    async def test_general_ignores_permissions(self, store):
        issued = await store.create(
            "user-1", "server", CredentialType.GENERAL, _permissions(allowed_tools=["x"])
        )
        found = await store.find_by_digest(issued.credential.digest)
        assert found.permissions is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("rate_limit", [0, -1, 10001])
    async def test_rate_limit_out_of_range(self, store, rate_limit):
        with pytest.raises(GateError) as exc_info:
            await store.create("user-1", "k", CredentialType.GENERAL, rate_limit=rate_limit)
        assert exc_info.value.code == "invalid_request"

    @pytest.mark.asyncio
    async def test_secret_not_stored(self, store, tmp_path):
        """Test the plaintext secret is not persisted anywhere."""
        issued = await store.create("user-1", "k", CredentialType.GENERAL)
        found = await store.find_by_digest(issued.credential.digest)
        assert issued.secret not in repr(found)

        if isinstance(store, SQLiteCredentialStore):
            with sqlite3.connect(store.db_path) as conn:
                rows = conn.execute("SELECT * FROM api_keys").fetchall()
            assert all(issued.secret not in str(row) for row in rows)


class TestLookup:
    """Tests for lookups and ownership isolation."""

    @pytest.mark.asyncio
    async def test_find_by_digest_miss(self, store):
        assert await store.find_by_digest("0" * 64) is None

    @pytest.mark.asyncio
    async def test_find_by_secret(self, store):
        issued = await store.create("user-1", "k", CredentialType.GENERAL)
        found = await store.find_by_secret(issued.secret)
        assert found.id == issued.credential.id

    @pytest.mark.asyncio
    async def test_find_by_owner_and_id(self, store):
        issued = await store.create("user-1", "k", CredentialType.GENERAL)
        credential_id = issued.credential.id

        assert (await store.find_by_owner_and_id(credential_id, "user-1")).id == credential_id
        assert await store.find_by_owner_and_id(credential_id, "user-2") is None

    @pytest.mark.asyncio
    async def test_list_by_owner_newest_first(self, store):
        """Test listings only contain the owner's keys, newest first."""
        first = await store.create("user-1", "first", CredentialType.GENERAL)
        second = await store.create("user-1", "second", CredentialType.GENERAL)
        await store.create("user-2", "other", CredentialType.GENERAL)

        listed = await store.list_by_owner("user-1")
        assert [c.id for c in listed] == [second.credential.id, first.credential.id]

    @pytest.mark.asyncio
    async def test_returned_records_are_copies(self):
        """Test mutating a returned record does not change the in-memory store."""
        store = InMemoryCredentialStore()
        issued = await store.create(
            "user-1", "k", CredentialType.SCOPED, _permissions(allowed_tools=["search"])
        )
        found = await store.find_by_digest(issued.credential.digest)
        found.permissions.allowed_tools.append("email")

        again = await store.find_by_digest(issued.credential.digest)
        assert again.permissions.allowed_tools == ["search"]


class TestRevoke:
    """Tests for revocation."""

    @pytest.mark.asyncio
    async def test_revoke(self, store):
        issued = await store.create("user-1", "k", CredentialType.GENERAL)
        assert await store.revoke(issued.credential.id, "user-1")

        found = await store.find_by_digest(issued.credential.digest)
        assert found.revoked
        assert found.revoked_at is not None

    @pytest.mark.asyncio
    async def test_revoke_twice(self, store):
        """Test a second revoke reports False."""
        issued = await store.create("user-1", "k", CredentialType.GENERAL)
        assert await store.revoke(issued.credential.id, "user-1")
        assert not await store.revoke(issued.credential.id, "user-1")

    @pytest.mark.asyncio
    async def test_revoke_foreign(self, store):
        issued = await store.create("user-1", "k", CredentialType.GENERAL)
        assert not await store.revoke(issued.credential.id, "user-2")
        found = await store.find_by_digest(issued.credential.digest)
        assert not found.revoked

    @pytest.mark.asyncio
    async def test_revoke_missing(self, store):
        assert not await store.revoke("missing", "user-1")


class TestUpdatePermissions:
    """Tests for permission replacement."""

    @pytest.mark.asyncio
    async def test_replace(self, store):
        issued = await store.create(
            "user-1", "k", CredentialType.SCOPED, _permissions(allowed_tools=["search"])
        )
        updated = _permissions(allowed_tools=["email"], allowed_models=["small"])
        assert await store.update_permissions(issued.credential.id, "user-1", updated)

        found = await store.find_by_digest(issued.credential.digest)
        assert found.permissions == updated

    @pytest.mark.asyncio
    async def test_general_rejected(self, store):
        """Test permissions cannot be set on a general key."""
        issued = await store.create("user-1", "k", CredentialType.GENERAL)
        with pytest.raises(GateError) as exc_info:
            await store.update_permissions(issued.credential.id, "user-1", _permissions())
        assert exc_info.value.code == "invalid_operation"

    @pytest.mark.asyncio
    async def test_foreign_or_missing(self, store):
        issued = await store.create(
            "user-1", "k", CredentialType.SCOPED, _permissions(allowed_tools=["search"])
        )
        assert not await store.update_permissions(issued.credential.id, "user-2", _permissions())
        assert not await store.update_permissions("missing", "user-1", _permissions())


class TestDelete:
    """Tests for hard delete."""

    @pytest.mark.asyncio
    async def test_delete(self, store):
        issued = await store.create(
            "user-1", "k", CredentialType.SCOPED, _permissions(allowed_tools=["search"])
        )
        assert await store.delete(issued.credential.id, "user-1")
        assert await store.find_by_digest(issued.credential.digest) is None
        assert await store.list_by_owner("user-1") == []

    @pytest.mark.asyncio
    async def test_delete_foreign(self, store):
        issued = await store.create("user-1", "k", CredentialType.GENERAL)
        assert not await store.delete(issued.credential.id, "user-2")
        assert await store.find_by_digest(issued.credential.digest) is not None

    @pytest.mark.asyncio
    async def test_delete_cascades_permissions(self, tmp_path):
        store = SQLiteCredentialStore(str(tmp_path / "keygate.db"))
        issued = await store.create(
            "user-1", "k", CredentialType.SCOPED, _permissions(allowed_tools=["search"])
        )
        await store.delete(issued.credential.id, "user-1")

        with sqlite3.connect(store.db_path) as conn:
            count = conn.execute("SELECT COUNT(*) FROM scoped_permissions").fetchone()[0]
        assert count == 0


class TestLastUsed:
    """Tests for update_last_used."""

    @pytest.mark.asyncio
    async def test_update_last_used(self, store):
        issued = await store.create("user-1", "k", CredentialType.GENERAL)
        when = datetime(2025, 1, 15, 12, 0, tzinfo=UTC)
        await store.update_last_used(issued.credential.id, when)

        found = await store.find_by_digest(issued.credential.digest)
        assert found.last_used_at == when

    @pytest.mark.asyncio
    async def test_update_last_used_missing_is_noop(self, store):
        await store.update_last_used("missing")


class TestSQLitePersistence:
    """Tests that SQLite data survives a new store instance."""

    @pytest.mark.asyncio
    async def test_reopen(self, tmp_path):
        path = str(tmp_path / "keygate.db")
        issued = await SQLiteCredentialStore(path).create("user-1", "k", CredentialType.GENERAL)

        reopened = SQLiteCredentialStore(path)
        found = await reopened.find_by_digest(issued.credential.digest)
        assert found.id == issued.credential.id
        assert found.created_at == issued.credential.created_at

    @pytest.mark.asyncio
    async def test_ping(self, tmp_path):
        store = SQLiteCredentialStore(str(tmp_path / "keygate.db"))
        assert await store.ping()

"""Credential store for issued API keys.

The store is a port: the gate and the management routes only depend on
CredentialStore, so storage engines can be swapped and tests can run
against the in-memory adapter.

Stores:
- Credential records (digest, hint, type, lifecycle timestamps, rate limit)
- Scoped permission sub-records (1:1 with scoped credentials)

Plaintext secrets are returned once from create() and never stored.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
import uuid
from abc import ABC, abstractmethod
from copy import deepcopy
from datetime import datetime

from keygate.errors import create_error

from .credentials import credential_hint, digest_credential, generate_credential
from .models import (
    Credential,
    CredentialType,
    IssuedCredential,
    ScopedPermissions,
    utcnow,
)

logger = logging.getLogger(__name__)

DEFAULT_RATE_LIMIT = 100
MAX_RATE_LIMIT = 10000


def build_credential(
    owner_id: str,
    name: str,
    credential_type: CredentialType,
    permissions: ScopedPermissions | None = None,
    rate_limit: int = DEFAULT_RATE_LIMIT,
) -> IssuedCredential:
    """Generate a secret and the record that describes it.

    Shared by all store adapters so validation is identical everywhere.

    Raises:
        GateError: MISSING_PERMISSIONS if a scoped credential has no
            permissions object, VALIDATION_ERROR for a bad rate limit or name
    """
    if not name or not name.strip():
        raise create_error("VALIDATION_ERROR", message="Key name must not be empty")
    if not 1 <= rate_limit <= MAX_RATE_LIMIT:
        raise create_error(
            "VALIDATION_ERROR",
            message=f"rate_limit must be between 1 and {MAX_RATE_LIMIT}",
        )

    if credential_type is CredentialType.SCOPED:
        if permissions is None:
            raise create_error("MISSING_PERMISSIONS")
        permissions = deepcopy(permissions)
    elif credential_type is CredentialType.GENERAL:
        # General credentials never carry permissions
        permissions = None
    else:
        raise ValueError(f"Unknown credential type: {credential_type!r}")

    secret = generate_credential(credential_type)
    credential = Credential(
        id=str(uuid.uuid4()),
        owner_id=owner_id,
        name=name,
        type=credential_type,
        prefix=credential_type.prefix,
        digest=digest_credential(secret),
        hint=credential_hint(secret),
        created_at=utcnow(),
        rate_limit=rate_limit,
        permissions=permissions,
    )
    return IssuedCredential(credential=credential, secret=secret)


class CredentialStore(ABC):
    """Abstract base class for credential storage."""

    @abstractmethod
    async def create(
        self,
        owner_id: str,
        name: str,
        credential_type: CredentialType,
        permissions: ScopedPermissions | None = None,
        rate_limit: int = DEFAULT_RATE_LIMIT,
    ) -> IssuedCredential:
        """Issue and persist a credential; the secret is returned only here."""

    @abstractmethod
    async def find_by_digest(self, digest: str) -> Credential | None:
        """Look up a credential (with permissions) by its digest."""

    @abstractmethod
    async def find_by_owner_and_id(self, credential_id: str, owner_id: str) -> Credential | None:
        """Get a credential owned by `owner_id`."""

    @abstractmethod
    async def list_by_owner(self, owner_id: str) -> list[Credential]:
        """List an owner's credentials, newest first."""

    @abstractmethod
    async def revoke(self, credential_id: str, owner_id: str) -> bool:
        """Revoke a credential.

        Returns:
            True if this call revoked it; False if missing, foreign or
            already revoked
        """

    @abstractmethod
    async def update_permissions(
        self,
        credential_id: str,
        owner_id: str,
        permissions: ScopedPermissions,
    ) -> bool:
        """Replace a scoped credential's permissions.

        Returns:
            False if the credential is missing or foreign

        Raises:
            GateError: INVALID_OPERATION if the credential is general
        """

    @abstractmethod
    async def delete(self, credential_id: str, owner_id: str) -> bool:
        """Hard delete a credential and its permissions."""

    @abstractmethod
    async def update_last_used(self, credential_id: str, when: datetime | None = None) -> None:
        """Record use of a credential. Best effort."""

    async def find_by_secret(self, secret: str) -> Credential | None:
        """Look up a credential by its plaintext secret."""
        return await self.find_by_digest(digest_credential(secret))

    async def ping(self) -> bool:
        """Check that the backing storage is reachable."""
        return True


class InMemoryCredentialStore(CredentialStore):
    """In-memory credential store.

    Returned records are copies, so callers cannot mutate stored state.
    """

    def __init__(self) -> None:
        self._credentials: dict[str, Credential] = {}  # id -> Credential
        self._by_digest: dict[str, str] = {}  # digest -> id
        self._lock = threading.Lock()

    async def create(
        self,
        owner_id: str,
        name: str,
        credential_type: CredentialType,
        permissions: ScopedPermissions | None = None,
        rate_limit: int = DEFAULT_RATE_LIMIT,
    ) -> IssuedCredential:
        issued = build_credential(owner_id, name, credential_type, permissions, rate_limit)
        credential = issued.credential

        with self._lock:
            if credential.digest in self._by_digest:
                raise create_error("INTERNAL_ERROR", detail="Credential digest collision")
            self._credentials[credential.id] = credential
            self._by_digest[credential.digest] = credential.id

        return IssuedCredential(credential=deepcopy(credential), secret=issued.secret)

    async def find_by_digest(self, digest: str) -> Credential | None:
        with self._lock:
            credential_id = self._by_digest.get(digest)
            if credential_id is None:
                return None
            return deepcopy(self._credentials[credential_id])

    async def find_by_owner_and_id(self, credential_id: str, owner_id: str) -> Credential | None:
        with self._lock:
            credential = self._owned(credential_id, owner_id)
            return deepcopy(credential) if credential else None

    async def list_by_owner(self, owner_id: str) -> list[Credential]:
        with self._lock:
            # dicts keep insertion order, which breaks created_at ties
            owned = [
                (c.created_at, index, c)
                for index, c in enumerate(self._credentials.values())
                if c.owner_id == owner_id
            ]
            owned.sort(key=lambda item: item[:2], reverse=True)
            return [deepcopy(c) for _, _, c in owned]

    async def revoke(self, credential_id: str, owner_id: str) -> bool:
        with self._lock:
            credential = self._owned(credential_id, owner_id)
            if credential is None or credential.revoked_at is not None:
                return False
            credential.revoked_at = utcnow()
            return True

    async def update_permissions(
        self,
        credential_id: str,
        owner_id: str,
        permissions: ScopedPermissions,
    ) -> bool:
        with self._lock:
            credential = self._owned(credential_id, owner_id)
            if credential is None:
                return False
            if credential.type is not CredentialType.SCOPED:
                raise create_error("INVALID_OPERATION")
            credential.permissions = deepcopy(permissions)
            return True

    async def delete(self, credential_id: str, owner_id: str) -> bool:
        with self._lock:
            credential = self._owned(credential_id, owner_id)
            if credential is None:
                return False
            del self._credentials[credential_id]
            self._by_digest.pop(credential.digest, None)
            return True

    async def update_last_used(self, credential_id: str, when: datetime | None = None) -> None:
        with self._lock:
            credential = self._credentials.get(credential_id)
            if credential is not None:
                credential.last_used_at = when or utcnow()

    def _owned(self, credential_id: str, owner_id: str) -> Credential | None:
        """Stored record if it exists and belongs to owner. Caller holds the lock."""
        credential = self._credentials.get(credential_id)
        if credential is None or credential.owner_id != owner_id:
            return None
        return credential


class SQLiteCredentialStore(CredentialStore):
    """SQLite-backed credential store for persistence."""

    def __init__(self, db_path: str):
        """Initialize store.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        """Open a connection with row access by name and cascading deletes."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def _init_db(self) -> None:
        """Initialize database schema."""
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS api_keys (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    key_prefix TEXT NOT NULL CHECK (key_prefix IN ('ozw_', 'ozw_scoped_')),
                    key_hash TEXT NOT NULL UNIQUE,
                    key_hint TEXT NOT NULL,
                    type TEXT NOT NULL CHECK (type IN ('general', 'scoped')),
                    created_at TEXT NOT NULL,
                    last_used_at TEXT,
                    revoked_at TEXT,
                    rate_limit INTEGER NOT NULL DEFAULT 100
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS scoped_permissions (
                    api_key_id TEXT PRIMARY KEY
                        REFERENCES api_keys(id) ON DELETE CASCADE,
                    allowed_agents TEXT NOT NULL DEFAULT '[]',
                    allowed_tools TEXT NOT NULL DEFAULT '[]',
                    allowed_models TEXT NOT NULL DEFAULT '[]',
                    allowed_domains TEXT NOT NULL DEFAULT '[]'
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_api_keys_user_id ON api_keys(user_id)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_api_keys_revoked ON api_keys(revoked_at)")

    async def create(
        self,
        owner_id: str,
        name: str,
        credential_type: CredentialType,
        permissions: ScopedPermissions | None = None,
        rate_limit: int = DEFAULT_RATE_LIMIT,
    ) -> IssuedCredential:
        issued = build_credential(owner_id, name, credential_type, permissions, rate_limit)
        credential = issued.credential

        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO api_keys
                (id, user_id, name, key_prefix, key_hash, key_hint, type, created_at, rate_limit)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    credential.id,
                    credential.owner_id,
                    credential.name,
                    credential.prefix,
                    credential.digest,
                    credential.hint,
                    credential.type.value,
                    credential.created_at.isoformat(),
                    credential.rate_limit,
                ),
            )
            if credential.permissions is not None:
                self._write_permissions(conn, credential.id, credential.permissions)

        return issued

    def _write_permissions(
        self,
        conn: sqlite3.Connection,
        credential_id: str,
        permissions: ScopedPermissions,
    ) -> None:
        conn.execute(
            """
            INSERT OR REPLACE INTO scoped_permissions
            (api_key_id, allowed_agents, allowed_tools, allowed_models, allowed_domains)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                credential_id,
                json.dumps(permissions.allowed_agents),
                json.dumps(permissions.allowed_tools),
                json.dumps(permissions.allowed_models),
                json.dumps(permissions.allowed_domains),
            ),
        )

    _SELECT = """
        SELECT ak.*, sp.api_key_id AS perm_key_id,
               sp.allowed_agents, sp.allowed_tools, sp.allowed_models, sp.allowed_domains
        FROM api_keys ak
        LEFT JOIN scoped_permissions sp ON ak.id = sp.api_key_id
    """

    def _row_to_credential(self, row: sqlite3.Row) -> Credential:
        """Convert database row to Credential."""
        permissions = None
        if row["perm_key_id"]:
            permissions = ScopedPermissions(
                allowed_agents=json.loads(row["allowed_agents"] or "[]"),
                allowed_tools=json.loads(row["allowed_tools"] or "[]"),
                allowed_models=json.loads(row["allowed_models"] or "[]"),
                allowed_domains=json.loads(row["allowed_domains"] or "[]"),
            )

        return Credential(
            id=row["id"],
            owner_id=row["user_id"],
            name=row["name"],
            type=CredentialType(row["type"]),
            prefix=row["key_prefix"],
            digest=row["key_hash"],
            hint=row["key_hint"],
            created_at=datetime.fromisoformat(row["created_at"]),
            last_used_at=datetime.fromisoformat(row["last_used_at"])
            if row["last_used_at"]
            else None,
            revoked_at=datetime.fromisoformat(row["revoked_at"]) if row["revoked_at"] else None,
            rate_limit=row["rate_limit"],
            permissions=permissions,
        )

    async def find_by_digest(self, digest: str) -> Credential | None:
        with self._connect() as conn:
            row = conn.execute(f"{self._SELECT} WHERE ak.key_hash = ?", (digest,)).fetchone()
            return self._row_to_credential(row) if row else None

    async def find_by_owner_and_id(self, credential_id: str, owner_id: str) -> Credential | None:
        with self._connect() as conn:
            row = conn.execute(
                f"{self._SELECT} WHERE ak.id = ? AND ak.user_id = ?",
                (credential_id, owner_id),
            ).fetchone()
            return self._row_to_credential(row) if row else None

    async def list_by_owner(self, owner_id: str) -> list[Credential]:
        with self._connect() as conn:
            rows = conn.execute(
                f"{self._SELECT} WHERE ak.user_id = ?"
                " ORDER BY ak.created_at DESC, ak.rowid DESC",
                (owner_id,),
            ).fetchall()
            return [self._row_to_credential(row) for row in rows]

    async def revoke(self, credential_id: str, owner_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute(
                """
                UPDATE api_keys SET revoked_at = ?
                WHERE id = ? AND user_id = ? AND revoked_at IS NULL
                """,
                (utcnow().isoformat(), credential_id, owner_id),
            )
            return cursor.rowcount > 0

    async def update_permissions(
        self,
        credential_id: str,
        owner_id: str,
        permissions: ScopedPermissions,
    ) -> bool:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT type FROM api_keys WHERE id = ? AND user_id = ?",
                (credential_id, owner_id),
            ).fetchone()
            if row is None:
                return False
            if CredentialType(row["type"]) is not CredentialType.SCOPED:
                raise create_error("INVALID_OPERATION")
            self._write_permissions(conn, credential_id, permissions)
            return True

    async def delete(self, credential_id: str, owner_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM api_keys WHERE id = ? AND user_id = ?",
                (credential_id, owner_id),
            )
            return cursor.rowcount > 0

    async def update_last_used(self, credential_id: str, when: datetime | None = None) -> None:
        with self._connect() as conn:
            conn.execute(
                "UPDATE api_keys SET last_used_at = ? WHERE id = ?",
                ((when or utcnow()).isoformat(), credential_id),
            )

    async def ping(self) -> bool:
        try:
            with self._connect() as conn:
                conn.execute("SELECT 1").fetchone()
            return True
        except sqlite3.Error as e:
            logger.warning(f"Credential store unreachable: {e}")
            return False

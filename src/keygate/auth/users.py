"""Dashboard user accounts.

Users own credentials and sign in to the management surface. Passwords are
stored as bcrypt hashes; emails are normalised to lower case and unique.
"""

from __future__ import annotations

import asyncio
import base64
import hashlib
import logging
import sqlite3
import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime

import bcrypt

from keygate.errors import create_error

from .models import utcnow

logger = logging.getLogger(__name__)


@dataclass
class User:
    """A dashboard principal."""

    id: str
    email: str
    password_hash: str
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _prepare_password(password: str) -> bytes:
    """Pre-hash with SHA-256 so passwords past bcrypt's 72-byte limit still count in full."""
    return base64.b64encode(hashlib.sha256(password.encode("utf-8")).digest())


def hash_password(password: str) -> str:
    """Hash a password using bcrypt.

    Args:
        password: Plain text password

    Returns:
        bcrypt hash (string)
    """
    return bcrypt.hashpw(_prepare_password(password), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    """Verify a password against its bcrypt hash.

    Args:
        password: Plain text password to verify
        hashed: bcrypt hash to verify against

    Returns:
        True if password matches hash
    """
    try:
        return bcrypt.checkpw(_prepare_password(password), hashed.encode("utf-8"))
    except ValueError:
        return False


class UserStore(ABC):
    """Abstract base class for user storage."""

    @abstractmethod
    async def create(self, email: str, password: str) -> User:
        """Register a user.

        Raises:
            GateError: EMAIL_TAKEN if the email is already registered
        """

    @abstractmethod
    async def find_by_email(self, email: str) -> User | None:
        """Get a user by (case-insensitive) email."""

    @abstractmethod
    async def find_by_id(self, user_id: str) -> User | None:
        """Get a user by ID."""

    async def verify_credentials(self, email: str, password: str) -> User | None:
        """Check an email/password pair.

        Returns:
            The user if the password matches, None otherwise
        """
        user = await self.find_by_email(email)
        if user is None:
            return None
        if not await asyncio.to_thread(verify_password, password, user.password_hash):
            return None
        return user


class InMemoryUserStore(UserStore):
    """In-memory user store."""

    def __init__(self) -> None:
        self._users: dict[str, User] = {}  # id -> User
        self._by_email: dict[str, str] = {}  # email -> id
        self._lock = threading.Lock()

    async def create(self, email: str, password: str) -> User:
        email = normalize_email(email)
        password_hash = await asyncio.to_thread(hash_password, password)
        user = User(id=str(uuid.uuid4()), email=email, password_hash=password_hash)

        with self._lock:
            if email in self._by_email:
                raise create_error("EMAIL_TAKEN")
            self._users[user.id] = user
            self._by_email[email] = user.id

        logger.info(f"[AUTH] Registered user {user.id}")
        return user

    async def find_by_email(self, email: str) -> User | None:
        with self._lock:
            user_id = self._by_email.get(normalize_email(email))
            return self._users.get(user_id) if user_id else None

    async def find_by_id(self, user_id: str) -> User | None:
        with self._lock:
            return self._users.get(user_id)


class SQLiteUserStore(UserStore):
    """SQLite-backed user store."""

    def __init__(self, db_path: str):
        """Initialize store.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path
        self._init_db()

    def _init_db(self) -> None:
        """Initialize database schema."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    id TEXT PRIMARY KEY,
                    email TEXT NOT NULL UNIQUE,
                    password_hash TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

    def _row_to_user(self, row: sqlite3.Row) -> User:
        return User(
            id=row["id"],
            email=row["email"],
            password_hash=row["password_hash"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    async def create(self, email: str, password: str) -> User:
        user = User(
            id=str(uuid.uuid4()),
            email=normalize_email(email),
            password_hash=await asyncio.to_thread(hash_password, password),
        )

        try:
            with sqlite3.connect(self.db_path) as conn:
                conn.execute(
                    """
                    INSERT INTO users (id, email, password_hash, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (
                        user.id,
                        user.email,
                        user.password_hash,
                        user.created_at.isoformat(),
                        user.updated_at.isoformat(),
                    ),
                )
        except sqlite3.IntegrityError as e:
            raise create_error("EMAIL_TAKEN") from e

        logger.info(f"[AUTH] Registered user {user.id}")
        return user

    async def find_by_email(self, email: str) -> User | None:
        with sqlite3.connect(self.db_path) as conn:
            conn.row_factory = sqlite3.Row
            row = conn.execute(
                "SELECT * FROM users WHERE email = ?", (normalize_email(email),)
            ).fetchone()
            return self._row_to_user(row) if row else None

    async def find_by_id(self, user_id: str) -> User | None:
        with sqlite3.connect(self.db_path) as conn:
            conn.row_factory = sqlite3.Row
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
            return self._row_to_user(row) if row else None

"""Persistent (agent, user) -> multisig registry.

The uniqueness of a pair is enforced by the store itself, not by callers
checking first, so concurrent writers can never register two wallets.
"""

from __future__ import annotations

import sqlite3
from abc import ABC, abstractmethod
from pathlib import Path

import aiosqlite

from ..errors import DuplicateMultisigError, RegistryStoreError
from ..logger import get_logger
from .models import MultisigRecord

logger = get_logger(__name__)


class MultisigRegistryStore(ABC):
    @abstractmethod
    async def find_by_pair(
        self, agent_address: str, user_address: str
    ) -> MultisigRecord | None:
        ...

    @abstractmethod
    async def insert(self, record: MultisigRecord) -> None:
        """Persist a new record.

        Raises:
            DuplicateMultisigError: If the pair is already registered.
        """
        ...

    async def close(self) -> None:
        return None


class SQLiteMultisigStore(MultisigRegistryStore):
    """aiosqlite-backed store.

    Addresses are stored lowercased so lookups are case-insensitive; the
    ``UNIQUE(agent_address, user_address)`` constraint rejects a second
    registration for the same pair.
    """

    def __init__(self, db_path: Path | str) -> None:
        self.db_path = Path(db_path)
        self._conn: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        """Open the database connection and create the table if needed."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            self._conn = await aiosqlite.connect(str(self.db_path))
            await self._conn.execute("PRAGMA journal_mode=WAL;")
            self._conn.row_factory = sqlite3.Row
            await self._migrate()
        except sqlite3.Error as e:
            raise RegistryStoreError(
                f"Cannot open multisig registry at {self.db_path}: {e}"
            ) from e

    async def close(self) -> None:
        if self._conn is not None:
            await self._conn.close()
            self._conn = None

    async def __aenter__(self) -> SQLiteMultisigStore:
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @property
    def conn(self) -> aiosqlite.Connection:
        assert self._conn is not None, "Store not connected. Call connect() first."
        return self._conn

    async def _migrate(self) -> None:
        await self.conn.executescript(
            """\
            CREATE TABLE IF NOT EXISTS multisig (
                multisig_address TEXT NOT NULL,
                agent_id TEXT NOT NULL,
                agent_address TEXT NOT NULL,
                user_address TEXT NOT NULL,
                coordinator_address TEXT NOT NULL,
                threshold INTEGER NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                UNIQUE (agent_address, user_address)
            );
            """
        )
        await self.conn.commit()

    async def find_by_pair(
        self, agent_address: str, user_address: str
    ) -> MultisigRecord | None:
        try:
            cursor = await self.conn.execute(
                "SELECT multisig_address, agent_id, agent_address, user_address, "
                "coordinator_address, threshold FROM multisig "
                "WHERE agent_address = ? AND user_address = ?",
                (agent_address.lower(), user_address.lower()),
            )
            row = await cursor.fetchone()
        except sqlite3.Error as e:
            raise RegistryStoreError(f"Multisig lookup failed: {e}") from e
        if row is None:
            return None
        return MultisigRecord(
            multisig_address=row["multisig_address"],
            agent_id=row["agent_id"],
            agent_address=row["agent_address"],
            user_address=row["user_address"],
            coordinator_address=row["coordinator_address"],
            threshold=int(row["threshold"]),
        )

    async def insert(self, record: MultisigRecord) -> None:
        try:
            await self.conn.execute(
                "INSERT INTO multisig (multisig_address, agent_id, agent_address, "
                "user_address, coordinator_address, threshold) VALUES (?, ?, ?, ?, ?, ?)",
                (
                    record.multisig_address.lower(),
                    record.agent_id,
                    record.agent_address.lower(),
                    record.user_address.lower(),
                    record.coordinator_address.lower(),
                    record.threshold,
                ),
            )
            await self.conn.commit()
        except sqlite3.IntegrityError as e:
            await self.conn.rollback()
            raise DuplicateMultisigError(
                record.agent_address, record.user_address
            ) from e
        except sqlite3.Error as e:
            raise RegistryStoreError(f"Failed to register multisig: {e}") from e
        logger.debug(
            "Registered multisig %s for agent %s / user %s",
            record.multisig_address,
            record.agent_address,
            record.user_address,
        )

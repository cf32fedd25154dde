"""
Database schema definition for Humantime.

Humantime keeps everything in a single ordered key-value table. Keys are
prefixed by record kind ("block:<uuid>", "project:<sid>", "goal:<sid>")
plus the singleton keys "activeblock" and "undo"; values are JSON
documents produced by the Pydantic models.
"""

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Generator, Optional

logger = logging.getLogger(__name__)

# Database schema version
SCHEMA_VERSION = 1

CREATE_RECORDS_TABLE = """
CREATE TABLE IF NOT EXISTS records (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,  -- JSON document
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);
"""

CREATE_SCHEMA_VERSION_TABLE = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);
"""

CREATE_TRIGGERS = [
    """
    CREATE TRIGGER IF NOT EXISTS update_records_timestamp
    AFTER UPDATE OF value ON records
    BEGIN
        UPDATE records SET updated_at = CURRENT_TIMESTAMP WHERE key = NEW.key;
    END;
    """
]


class DatabaseManager:
    """Manages database connections, transactions and schema operations."""

    def __init__(self, db_path: Path):
        """Initialize database manager with the given database path."""
        self.db_path = db_path
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._transaction_conn: Optional[sqlite3.Connection] = None

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path))
        conn.execute("PRAGMA foreign_keys = ON")
        conn.execute("PRAGMA journal_mode = WAL")
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Get a database connection with proper cleanup.

        Inside ``transaction()`` the transaction's connection is reused and
        left open; otherwise changes are committed when the block exits
        without an exception.
        """
        if self._transaction_conn is not None:
            yield self._transaction_conn
            return

        conn = self._connect()
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Run a read-modify-write sequence atomically.

        Takes the database write lock up front with BEGIN IMMEDIATE so two
        processes cannot interleave their transitions. Nested calls join
        the outer transaction.
        """
        if self._transaction_conn is not None:
            yield self._transaction_conn
            return

        conn = self._connect()
        conn.isolation_level = None
        self._transaction_conn = conn
        try:
            conn.execute("BEGIN IMMEDIATE")
            yield conn
            conn.execute("COMMIT")
        except BaseException:
            if conn.in_transaction:
                logger.debug("Rolling back transaction")
                conn.execute("ROLLBACK")
            raise
        finally:
            self._transaction_conn = None
            conn.close()

    def initialize_database(self) -> None:
        """Initialize the database with the current schema."""
        with self.get_connection() as conn:
            conn.execute(CREATE_SCHEMA_VERSION_TABLE)

            current_version = self._get_schema_version(conn)

            if current_version is None:
                self._create_tables(conn)
                self._set_schema_version(conn, SCHEMA_VERSION)
                logger.debug(f"Created database schema v{SCHEMA_VERSION} at {self.db_path}")
            elif current_version < SCHEMA_VERSION:
                self._migrate_database(conn, current_version, SCHEMA_VERSION)

    def _create_tables(self, conn: sqlite3.Connection) -> None:
        """Create all database tables."""
        conn.execute(CREATE_RECORDS_TABLE)

        for trigger_sql in CREATE_TRIGGERS:
            conn.execute(trigger_sql)

    def _get_schema_version(self, conn: sqlite3.Connection) -> Optional[int]:
        """Get the current schema version."""
        try:
            cursor = conn.execute("SELECT MAX(version) FROM schema_version")
            result = cursor.fetchone()
            return result[0] if result and result[0] is not None else None
        except sqlite3.OperationalError:
            # Table doesn't exist yet
            return None

    def _set_schema_version(self, conn: sqlite3.Connection, version: int) -> None:
        """Set the schema version."""
        conn.execute("INSERT INTO schema_version (version) VALUES (?)", (version,))

    def _migrate_database(
        self, conn: sqlite3.Connection, from_version: int, to_version: int
    ) -> None:
        """Migrate database from one version to another."""
        # No migrations exist yet; version 1 is the first released schema.
        logger.info(f"Migrating database from v{from_version} to v{to_version}")
        self._create_tables(conn)
        self._set_schema_version(conn, to_version)

    def get_database_stats(self) -> Dict[str, Any]:
        """Get basic database statistics."""
        empty = {"total_records": 0, "total_blocks": 0, "database_size": 0}
        if not self.db_path.exists():
            return empty

        try:
            with self.get_connection() as conn:
                cursor = conn.execute(
                    """
                    SELECT
                        COUNT(*) AS total_records,
                        COUNT(CASE WHEN substr(key, 1, 6) = 'block:' THEN 1 END) AS total_blocks
                    FROM records
                """
                )
                result = cursor.fetchone()
        except sqlite3.OperationalError:
            # Table doesn't exist, return basic stats
            return {**empty, "database_size": self.db_path.stat().st_size}

        return {
            "total_records": result["total_records"],
            "total_blocks": result["total_blocks"],
            "database_size": self.db_path.stat().st_size,
        }

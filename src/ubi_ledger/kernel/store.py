"""
SQLite Ledger Store - State snapshot plus append-only event log

Each committed ledger operation writes two things in ONE transaction:
- the full ledger state snapshot (accounts, streams, globals)
- the observability events the operation emitted

Either both land or neither does, which is what makes every public ledger
operation all-or-nothing across process restarts.

Fun fact: SQLite's WAL mode lets readers (the health server, a second CLI)
keep reading the last committed snapshot while a writer commits the next.
"""

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

from pydantic import BaseModel

from ubi_ledger.kernel.errors import StoreError
from ubi_ledger.kernel.events import Event
from ubi_ledger.kernel.retry import retry_on_sqlite_lock


class SQLiteLedgerStore:
    """
    SQLite-based ledger store

    Schema:
    - ledger_state: single row (id = 1) holding the JSON state snapshot
    - events: append-only event log ordered by seq
    - Indices: event_type, subject_id, operation_id for efficient queries
    """

    def __init__(self, db_path: str | Path) -> None:
        """
        Initialize store with SQLite database

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self._initialize_schema()

    def _initialize_schema(self) -> None:
        """Create tables and indices if they don't exist"""
        with self._connect() as conn:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA synchronous=NORMAL")

            conn.execute("""
                CREATE TABLE IF NOT EXISTS ledger_state (
                    id INTEGER PRIMARY KEY CHECK (id = 1),
                    state_json TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS events (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    event_id TEXT NOT NULL UNIQUE,
                    operation_id TEXT NOT NULL,
                    event_type TEXT NOT NULL,
                    subject_id TEXT NOT NULL,
                    occurred_at INTEGER NOT NULL,
                    actor_id TEXT,
                    payload_json TEXT NOT NULL
                )
            """)

            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_events_type ON events(event_type)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_events_subject ON events(subject_id)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_events_operation ON events(operation_id)"
            )

            conn.commit()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Context manager for database connections"""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    @retry_on_sqlite_lock()
    def commit(self, state: BaseModel, events: list[Event]) -> None:
        """
        Persist a state snapshot and its events atomically

        Args:
            state: Complete ledger state after the operation
            events: Events emitted by the operation (may be empty)

        Raises:
            StoreError: If the transaction fails (nothing is written)
        """
        with self._connect() as conn:
            try:
                conn.execute(
                    """
                    INSERT INTO ledger_state (id, state_json, updated_at)
                    VALUES (1, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        state_json = excluded.state_json,
                        updated_at = excluded.updated_at
                """,
                    (
                        state.model_dump_json(),
                        datetime.now(timezone.utc).isoformat(),
                    ),
                )

                for event in events:
                    conn.execute(
                        """
                        INSERT INTO events (
                            event_id, operation_id, event_type, subject_id,
                            occurred_at, actor_id, payload_json
                        ) VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                        (
                            event.event_id,
                            event.operation_id,
                            event.event_type,
                            event.subject_id,
                            event.occurred_at,
                            event.actor_id,
                            json.dumps(event.payload),
                        ),
                    )

                conn.commit()

            except sqlite3.OperationalError:
                # Lock contention: roll back and let the retry decorator decide
                conn.rollback()
                raise

            except sqlite3.Error as e:
                conn.rollback()
                raise StoreError(f"Failed to commit ledger state: {e}") from e

    @retry_on_sqlite_lock()
    def load_state_json(self) -> str | None:
        """
        Load the last committed state snapshot

        Returns:
            JSON text of the snapshot, or None for a fresh database
        """
        with self._connect() as conn:
            row = conn.execute("SELECT state_json FROM ledger_state WHERE id = 1").fetchone()
            return row["state_json"] if row else None

    def load_events(
        self,
        *,
        event_type: str | None = None,
        subject_id: str | None = None,
        operation_id: str | None = None,
        limit: int | None = None,
    ) -> list[Event]:
        """
        Query events in commit order

        Args:
            event_type: Filter by event type (e.g., "Transfer")
            subject_id: Filter by account or "stream:<id>"
            operation_id: Filter by the producing operation
            limit: Maximum number of events to return

        Returns:
            Matching events, oldest first
        """
        conditions = []
        params: list[object] = []

        if event_type:
            conditions.append("event_type = ?")
            params.append(event_type)

        if subject_id:
            conditions.append("subject_id = ?")
            params.append(subject_id)

        if operation_id:
            conditions.append("operation_id = ?")
            params.append(operation_id)

        where_clause = " AND ".join(conditions) if conditions else "1=1"
        query = f"""
            SELECT
                event_id, operation_id, event_type, subject_id,
                occurred_at, actor_id, payload_json
            FROM events
            WHERE {where_clause}
            ORDER BY seq ASC
        """

        if limit:
            query += " LIMIT ?"
            params.append(limit)

        with self._connect() as conn:
            cursor = conn.execute(query, params)
            return [self._row_to_event(row) for row in cursor.fetchall()]

    def _row_to_event(self, row: sqlite3.Row) -> Event:
        """Convert SQLite row to Event object"""
        return Event(
            event_id=row["event_id"],
            operation_id=row["operation_id"],
            event_type=row["event_type"],
            subject_id=row["subject_id"],
            occurred_at=row["occurred_at"],
            actor_id=row["actor_id"],
            payload=json.loads(row["payload_json"]),
        )

    def count_events(self) -> int:
        """Get total number of events in store"""
        with self._connect() as conn:
            return conn.execute("SELECT COUNT(*) FROM events").fetchone()[0]

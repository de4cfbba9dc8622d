"""
Humanity registry collaborators

The ledger never decides who is human. It asks a registry, at well-defined
points of each operation, whether an account is currently a verified,
unique human. Any object with an is_registered method will do.
"""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Protocol


class HumanityRegistry(Protocol):
    """Protocol for humanity registries - pure reads, no side effects"""

    def is_registered(self, account: str) -> bool:
        """Return True if the account is currently a registered human"""
        ...


class InMemoryHumanityRegistry:
    """Set-backed registry for tests and embedded use"""

    def __init__(self, humans: set[str] | None = None) -> None:
        self._humans: set[str] = set(humans or ())

    def is_registered(self, account: str) -> bool:
        return account in self._humans

    def register(self, account: str) -> None:
        self._humans.add(account)

    def remove(self, account: str) -> None:
        self._humans.discard(account)


class SQLiteHumanityRegistry:
    """
    Registry kept in a `humans` table, used by the CLI

    It can share the ledger database file; the ledger itself never writes
    to this table.
    """

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS humans (
                    account TEXT PRIMARY KEY
                )
            """)
            conn.commit()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(str(self.db_path))
        try:
            yield conn
        finally:
            conn.close()

    def is_registered(self, account: str) -> bool:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT 1 FROM humans WHERE account = ?", (account,)
            ).fetchone()
            return row is not None

    def register(self, account: str) -> None:
        with self._connect() as conn:
            conn.execute("INSERT OR IGNORE INTO humans (account) VALUES (?)", (account,))
            conn.commit()

    def remove(self, account: str) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM humans WHERE account = ?", (account,))
            conn.commit()

    def list_humans(self) -> list[str]:
        with self._connect() as conn:
            return [row[0] for row in conn.execute("SELECT account FROM humans ORDER BY account")]

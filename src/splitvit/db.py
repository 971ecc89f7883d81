"""SQLite database operations for SplitVit.

Only the signed-in session is kept locally; groups, members and expenses
live in the hosted backend.
"""

import sqlite3
from datetime import datetime
from pathlib import Path

from .models import AuthSession

SESSION_KEY = "auth_session"


class Database:
    """SQLite database manager."""

    def __init__(self, db_path: Path):
        """Initialize database connection."""
        self.db_path = db_path
        self.conn = sqlite3.connect(str(db_path))
        self.conn.row_factory = sqlite3.Row
        self._init_schema()

    def _init_schema(self):
        """Initialize database schema."""
        cursor = self.conn.cursor()

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS config (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )

        self.conn.commit()

    def close(self):
        """Close database connection."""
        self.conn.close()

    # ========================================================================
    # Config operations
    # ========================================================================

    def get_config(self, key: str) -> str | None:
        """Get a config value by key."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT value FROM config WHERE key = ?", (key,))
        row = cursor.fetchone()
        return str(row["value"]) if row else None

    def set_config(self, key: str, value: str):
        """Set a config value."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO config (key, value, updated_at)
            VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET
                value = excluded.value,
                updated_at = excluded.updated_at
            """,
            (key, value, datetime.now().isoformat()),
        )
        self.conn.commit()

    def delete_config(self, key: str):
        """Remove a config value if present."""
        cursor = self.conn.cursor()
        cursor.execute("DELETE FROM config WHERE key = ?", (key,))
        self.conn.commit()

    # ========================================================================
    # Session operations
    # ========================================================================

    def save_session(self, session: AuthSession):
        """Persist the current auth session."""
        self.set_config(SESSION_KEY, session.model_dump_json())

    def get_session(self) -> AuthSession | None:
        """Load the persisted auth session, if any."""
        value = self.get_config(SESSION_KEY)
        return AuthSession.model_validate_json(value) if value else None

    def clear_session(self):
        """Forget the persisted auth session."""
        self.delete_config(SESSION_KEY)

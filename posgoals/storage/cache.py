"""Simple SQLite key-value cache for goals and celebration markers."""

import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Optional

from posgoals.pos.models import Track

logger = logging.getLogger(__name__)


def goal_key(track: Track, store_scope: str) -> str:
    """Cache key holding the last resolved goal for a track."""
    return f"goal_{track.value}_{store_scope}"


def celebration_key(track: Track, store_scope: str) -> str:
    """Cache key holding the period key of the last celebration for a track."""
    return f"celebration_{track.value}_{store_scope}"


class GoalCache:
    """Durable local key-value store backing the goal engine."""

    def __init__(self, db_path: str = "data/goal_cache.db"):
        """Initialize database."""
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self):
        """Create cache table if it doesn't exist."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS goal_cache (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            conn.commit()
        logger.info(f"Goal cache initialized at {self.db_path}")

    def get(self, key: str) -> Optional[str]:
        """Get cached value, or None if absent."""
        with sqlite3.connect(self.db_path) as conn:
            row = conn.execute(
                "SELECT value FROM goal_cache WHERE key = ?", (key,)
            ).fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str):
        """Insert or overwrite a cached value."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO goal_cache (key, value, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
                """,
                (key, value, datetime.now().isoformat()),
            )
            conn.commit()

    def remove(self, key: str):
        """Delete a cached value if present."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("DELETE FROM goal_cache WHERE key = ?", (key,))
            conn.commit()

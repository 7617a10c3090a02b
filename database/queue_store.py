"""
Queue entry storage for the pickup matchmaking system.
"""

import sqlite3
import logging
from datetime import datetime
from typing import List, Optional, Sequence
from models.queue import QueueEntry
from matchmaking.errors import DependencyUnavailable
from utils.time_utils import TimeUtils

logger = logging.getLogger(__name__)

_ENTRY_COLUMNS = "entry_id, player_id, mode, enqueued_at"


class QueueStore:
    """Pure SQL operations for queue_entries."""

    def __init__(self, database_manager):
        self.db_manager = database_manager

    def add_entry(self, player_id: str, mode: str, enqueued_at: datetime) -> Optional[QueueEntry]:
        """Add an entry. Returns None if the player already holds one for this mode."""
        try:
            with self.db_manager.transaction() as conn:
                cursor = conn.execute(
                    "INSERT INTO queue_entries (player_id, mode, enqueued_at) VALUES (?, ?, ?)",
                    (player_id, mode, TimeUtils.to_db(enqueued_at))
                )
                entry_id = cursor.lastrowid
        except sqlite3.IntegrityError:
            return None
        except sqlite3.Error as e:
            logger.error(f"Queue store unavailable: {e}")
            raise DependencyUnavailable(f"queue store: {e}") from e
        return QueueEntry(player_id=player_id, mode=mode, enqueued_at=enqueued_at, entry_id=entry_id)

    def find_entry(self, player_id: str, mode: str) -> Optional[QueueEntry]:
        """Find the active entry of a player in a mode."""
        try:
            with self.db_manager.transaction() as conn:
                row = conn.execute(
                    f"SELECT {_ENTRY_COLUMNS} FROM queue_entries WHERE player_id = ? AND mode = ?",
                    (player_id, mode)
                ).fetchone()
        except sqlite3.Error as e:
            logger.error(f"Queue store unavailable: {e}")
            raise DependencyUnavailable(f"queue store: {e}") from e
        return self._row_to_entry(row) if row else None

    def get_active_entries(self, mode: str) -> List[QueueEntry]:
        """All entries of a mode in enqueue order (FIFO)."""
        try:
            with self.db_manager.transaction() as conn:
                rows = conn.execute(
                    f"SELECT {_ENTRY_COLUMNS} FROM queue_entries WHERE mode = ? "
                    "ORDER BY enqueued_at ASC, entry_id ASC",
                    (mode,)
                ).fetchall()
        except sqlite3.Error as e:
            logger.error(f"Queue store unavailable: {e}")
            raise DependencyUnavailable(f"queue store: {e}") from e
        return [self._row_to_entry(row) for row in rows]

    def count_active(self, mode: str) -> int:
        with self.db_manager.transaction() as conn:
            return conn.execute("SELECT COUNT(*) FROM queue_entries WHERE mode = ?", (mode,)).fetchone()[0]

    def remove_entry(self, player_id: str, mode: str) -> bool:
        """Remove an active entry. Returns True if removed."""
        with self.db_manager.transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM queue_entries WHERE player_id = ? AND mode = ?",
                (player_id, mode)
            )
            return cursor.rowcount == 1

    def remove_entries(self, entry_ids: Sequence[int], conn: sqlite3.Connection) -> int:
        """Delete a batch of entries inside the caller's transaction. Returns rows deleted."""
        if not entry_ids:
            return 0
        placeholders = ", ".join("?" for _ in entry_ids)
        cursor = conn.execute(
            f"DELETE FROM queue_entries WHERE entry_id IN ({placeholders})",
            list(entry_ids)
        )
        return cursor.rowcount

    @staticmethod
    def _row_to_entry(row) -> QueueEntry:
        return QueueEntry(
            entry_id=row[0],
            player_id=row[1],
            mode=row[2],
            enqueued_at=TimeUtils.from_db(row[3])
        )

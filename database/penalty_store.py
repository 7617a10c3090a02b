"""
Penalty record storage for the pickup matchmaking system.
"""

import sqlite3
import logging
from typing import List, Optional
from models.penalty import PenaltyRecord
from matchmaking.errors import DependencyUnavailable
from utils.time_utils import TimeUtils

logger = logging.getLogger(__name__)


class PenaltyStore:
    """Reads and writes leaver penalty records. Records are never deleted."""

    def __init__(self, database_manager):
        self.db_manager = database_manager

    def get_record(self, player_id: str) -> Optional[PenaltyRecord]:
        try:
            with self.db_manager.transaction() as conn:
                row = conn.execute(
                    "SELECT player_id, leave_count, last_penalty_at, suspension_end "
                    "FROM penalties WHERE player_id = ?",
                    (player_id,)
                ).fetchone()
        except sqlite3.Error as e:
            logger.error(f"Penalty store unavailable: {e}")
            raise DependencyUnavailable(f"penalty store: {e}") from e
        return self._row_to_record(row) if row else None

    def save_record(self, record: PenaltyRecord) -> None:
        with self.db_manager.transaction() as conn:
            conn.execute("""
                INSERT INTO penalties (player_id, leave_count, last_penalty_at, suspension_end)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(player_id) DO UPDATE SET
                    leave_count = excluded.leave_count,
                    last_penalty_at = excluded.last_penalty_at,
                    suspension_end = excluded.suspension_end
            """, (record.player_id, record.leave_count,
                  TimeUtils.to_db(record.last_penalty_at), TimeUtils.to_db(record.suspension_end)))

    def get_all_records(self) -> List[PenaltyRecord]:
        with self.db_manager.transaction() as conn:
            rows = conn.execute(
                "SELECT player_id, leave_count, last_penalty_at, suspension_end "
                "FROM penalties ORDER BY player_id"
            ).fetchall()
        return [self._row_to_record(row) for row in rows]

    @staticmethod
    def _row_to_record(row) -> PenaltyRecord:
        return PenaltyRecord(
            player_id=row[0],
            leave_count=row[1],
            last_penalty_at=TimeUtils.from_db(row[2]),
            suspension_end=TimeUtils.from_db(row[3])
        )

"""
Leaver penalties: a per-player tally that decays by one per day and
suspends the player once it reaches the threshold.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Union
from models.penalty import PenaltyRecord, PenaltyStatus, PenaltyApplied, NoPenalty
from utils.time_utils import TimeUtils

logger = logging.getLogger(__name__)


class PenaltyLedger:
    """Read-modify-write access to one player's penalty record at a time."""

    def __init__(self, penalty_store, settings: Dict[str, Any]):
        self.store = penalty_store
        self.leave_window = timedelta(minutes=settings.get('leave_window_minutes', 20))
        self.threshold = int(settings.get('suspension_threshold', 3))
        self.suspension_length = timedelta(hours=settings.get('suspension_hours', 24))
        self.decay_period = timedelta(hours=settings.get('decay_period_hours', 24))

    def _load(self, player_id: str) -> PenaltyRecord:
        return self.store.get_record(player_id) or PenaltyRecord(player_id=player_id)

    def record_leave(self, player_id: str, scheduled_start: datetime,
                     now: datetime) -> Union[PenaltyApplied, NoPenalty]:
        """Penalize a leave that happens inside the window before kick-off."""
        if now < scheduled_start - self.leave_window:
            logger.info(f"Player {player_id} left {scheduled_start - now} before kick-off, no penalty")
            record = self.store.get_record(player_id)
            return NoPenalty(tally=record.leave_count if record else 0)

        record = self._load(player_id)
        record.leave_count += 1
        record.last_penalty_at = now
        if record.leave_count >= self.threshold:
            record.suspension_end = now + self.suspension_length
            logger.warning(f"Player {player_id} suspended until {record.suspension_end} "
                           f"({record.leave_count} late leaves)")
        self.store.save_record(record)

        logger.info(f"Leave penalty for {player_id}: tally {record.leave_count}")
        return PenaltyApplied(tally=record.leave_count, suspension_end=record.suspension_end)

    def get_status(self, player_id: str, now: datetime) -> PenaltyStatus:
        """Apply decay and suspension expiry as of ``now`` and report the result."""
        record = self.store.get_record(player_id)
        if record is None:
            return PenaltyStatus(is_suspended=False, suspension_end=None, tally=0)

        changed = False
        if record.last_penalty_at is not None and record.leave_count > 0:
            elapsed = TimeUtils.whole_periods(record.last_penalty_at, now, self.decay_period)
            if elapsed > 0:
                record.leave_count = max(0, record.leave_count - elapsed)
                changed = True
            # decay restarts from every check that leaves a tally
            if record.leave_count > 0 and record.last_penalty_at != now:
                record.last_penalty_at = now
                changed = True

        if record.suspension_end is not None and now >= record.suspension_end:
            logger.info(f"Suspension of {player_id} ended at {record.suspension_end}")
            record.suspension_end = None
            changed = True

        if changed:
            self.store.save_record(record)

        return PenaltyStatus(
            is_suspended=record.suspension_end is not None,
            suspension_end=record.suspension_end,
            tally=record.leave_count
        )

"""
Queue orchestration: join/leave, match formation and atomic commit.

Each mode's queue is owned by one lock and each field's calendar by
another. A match attempt holds its mode lock from draining the queue to
the commit; slot re-validation and the commit also hold the field lock.
Those locks are per process; across processes the commit transaction
takes sqlite's write lock before re-validating, and the slot update only
succeeds on a slot that is still available.
"""

import logging
import threading
from datetime import datetime
from typing import Dict, List, Optional, Tuple, Union
from models.player import PlayerRecord, GAME_MODES
from models.game import GamePlayer, MatchResult, PlayerSummary, ScheduleResult, TEAM_A, TEAM_B
from models.penalty import PenaltyApplied, NoPenalty, PenaltyStatus
from models.queue import QueueEntry, QueuedAck, AlreadyQueued, LeftAck, NotQueued
from database.database_manager import DatabaseManager
from database.player_manager import PlayerManager
from database.field_manager import FieldManager
from database.game_manager import GameManager
from database.queue_store import QueueStore
from database.penalty_store import PenaltyStore
from matchmaking.errors import (
    InsufficientPlayers, NoSlotFound, MatchCommitError, PlayerSuspended, InvalidMode
)
from matchmaking.team_balancer import TeamBalancer
from matchmaking.field_scheduler import FieldScheduler
from matchmaking.penalty_ledger import PenaltyLedger

logger = logging.getLogger(__name__)


class QueueManager:
    """Entry point for queue, match and penalty requests."""

    def __init__(self, db_manager: DatabaseManager,
                 player_manager: Optional[PlayerManager] = None,
                 field_manager: Optional[FieldManager] = None,
                 game_manager: Optional[GameManager] = None,
                 queue_store: Optional[QueueStore] = None,
                 penalty_ledger: Optional[PenaltyLedger] = None,
                 scheduler: Optional[FieldScheduler] = None):
        self.db = db_manager
        config = db_manager.config
        self.players = player_manager or PlayerManager(db_manager)
        self.fields = field_manager or FieldManager(db_manager)
        self.games = game_manager or GameManager(db_manager)
        self.queue = queue_store or QueueStore(db_manager)
        self.penalties = penalty_ledger or PenaltyLedger(PenaltyStore(db_manager), config.get('penalties', {}))
        self.scheduler = scheduler or FieldScheduler(self.fields, self.games, config.get('scheduling', {}))

        modes = config.get('modes', {})
        self.balancer = TeamBalancer({mode: modes[mode]['roster_size'] for mode in modes})

        matchmaking = config.get('matchmaking', {})
        self.allow_filler = bool(matchmaking.get('allow_filler', True))
        self.game_duration = int(matchmaking.get('game_duration_minutes', 60))
        self.max_commit_attempts = int(matchmaking.get('max_commit_attempts', 3))

        self._mode_locks = {mode: threading.Lock() for mode in modes}
        self._field_locks: Dict[str, threading.Lock] = {}
        self._field_locks_guard = threading.Lock()

    def _check_mode(self, mode: str) -> None:
        if mode not in GAME_MODES or mode not in self._mode_locks:
            raise InvalidMode(f"Unknown game mode: {mode}")

    def _field_lock(self, field_id: str) -> threading.Lock:
        with self._field_locks_guard:
            if field_id not in self._field_locks:
                self._field_locks[field_id] = threading.Lock()
            return self._field_locks[field_id]

    def join_queue(self, player_id: str, mode: str,
                   now: datetime) -> Union[MatchResult, QueuedAck, AlreadyQueued]:
        """
        Queue a player and immediately try to form a match around them.

        Raises PlayerSuspended for players serving a suspension and
        MatchCommitError if a chosen match could not be persisted (the
        player stays queued in both the commit-failure and no-match cases).
        """
        self._check_mode(mode)
        player = self.players.get_player(player_id)

        status = self.penalties.get_status(player.player_id, now)
        if status.is_suspended:
            logger.info(f"Player {player_id} is suspended until {status.suspension_end}")
            raise PlayerSuspended(player.player_id, status.suspension_end)

        with self._mode_locks[mode]:
            entry = self.queue.add_entry(player.player_id, mode, now)
            if entry is None:
                existing = self.queue.find_entry(player.player_id, mode)
                logger.info(f"Player {player_id} is already in {mode} queue")
                return AlreadyQueued(entry=existing)

            logger.info(f"Player {player_id} added to {mode} queue")
            try:
                return self._try_match(player, entry, mode, now)
            except (InsufficientPlayers, NoSlotFound) as e:
                logger.warning(f"No {mode} match for {player_id} yet: {e}")
                return QueuedAck(entry=entry, reason=str(e))

    def leave_queue(self, player_id: str, mode: str) -> Union[LeftAck, NotQueued]:
        """Cancel a pending entry; a missing entry is reported, not an error."""
        self._check_mode(mode)
        with self._mode_locks[mode]:
            entry = self.queue.find_entry(player_id, mode)
            if entry is None or not self.queue.remove_entry(player_id, mode):
                logger.info(f"Player {player_id} is not in {mode} queue")
                return NotQueued(player_id=player_id, mode=mode)

        logger.info(f"Player {player_id} left {mode} queue")
        return LeftAck(entry=entry)

    def record_leave(self, player_id: str, game_start: datetime,
                     now: datetime) -> Union[PenaltyApplied, NoPenalty]:
        """Leaving a committed game goes through the penalty ledger."""
        return self.penalties.record_leave(player_id, game_start, now)

    def penalty_status(self, player_id: str, now: datetime) -> PenaltyStatus:
        return self.penalties.get_status(player_id, now)

    def queue_snapshot(self, mode: str) -> List[QueueEntry]:
        """Active entries of a mode in FIFO order."""
        self._check_mode(mode)
        with self._mode_locks[mode]:
            return self.queue.get_active_entries(mode)

    def _draw_candidates(self, anchor: PlayerRecord, anchor_entry: QueueEntry,
                         mode: str) -> Tuple[List[PlayerRecord], List[QueueEntry]]:
        """The anchor plus the longest-waiting entries, padded with fillers."""
        size = self.balancer.roster_size(mode)
        others = [e for e in self.queue.get_active_entries(mode) if e.entry_id != anchor_entry.entry_id]
        drawn = others[:size - 1]
        # Anchor joined last, so it sits at the back in FIFO order
        entries = drawn + [anchor_entry]

        records = self.players.get_players(e.player_id for e in drawn)
        pool = [records[e.player_id] for e in drawn] + [anchor]

        shortfall = size - len(pool)
        if shortfall > 0 and self.allow_filler:
            fillers = self.players.get_filler_candidates(
                anchor.category, shortfall, exclude_ids=[p.player_id for p in pool]
            )
            logger.info(f"Padding {mode} match with {len(fillers)} filler players")
            pool.extend(fillers)

        return pool, entries

    def _try_match(self, anchor: PlayerRecord, anchor_entry: QueueEntry,
                   mode: str, now: datetime) -> MatchResult:
        """Form, schedule and commit a match. Caller holds the mode lock."""
        pool, entries = self._draw_candidates(anchor, anchor_entry, mode)
        team_a, team_b = self.balancer.balance(anchor, pool, mode)

        for attempt in range(1, self.max_commit_attempts + 1):
            schedule = self.scheduler.find_slot(pool, mode, self.game_duration, now)
            with self._field_lock(schedule.field.field_id):
                game_id = self._commit(team_a, team_b, entries, schedule, mode)
            if game_id is None:
                logger.info(f"Slot at {schedule.field.name} taken meanwhile "
                            f"(attempt {attempt}/{self.max_commit_attempts})")
                continue

            logger.info(f"Match created for {mode}: game {game_id} at {schedule.field.name}")
            return MatchResult(
                game_id=game_id,
                mode=mode,
                team_a=[PlayerSummary.from_record(p, mode) for p in team_a],
                team_b=[PlayerSummary.from_record(p, mode) for p in team_b],
                field_id=schedule.field.field_id,
                field_name=schedule.field.name,
                start_time=schedule.start_time,
                end_time=schedule.end_time
            )

        raise NoSlotFound(f"Slots kept being taken after {self.max_commit_attempts} attempts")

    def _commit(self, team_a: List[PlayerRecord], team_b: List[PlayerRecord],
                entries: List[QueueEntry], schedule: ScheduleResult, mode: str) -> Optional[int]:
        """
        Create the game, consume the entries and the slot in one transaction.

        The transaction takes the database write lock before re-checking
        the slot, so managers in other processes cannot book it in between.
        Returns None, with nothing written, if the slot is no longer free.
        """
        roster = [GamePlayer(p.player_id, TEAM_A) for p in team_a] + \
                 [GamePlayer(p.player_id, TEAM_B) for p in team_b]
        entry_ids = [e.entry_id for e in entries]
        try:
            with self.db.transaction() as conn:
                conn.execute("BEGIN IMMEDIATE")
                if not self.scheduler.confirm(schedule, conn=conn):
                    return None
                game_id = self.games.create_game(
                    roster, mode, schedule.field.field_id,
                    schedule.start_time, schedule.end_time, conn=conn
                )
                removed = self.queue.remove_entries(entry_ids, conn)
                if removed != len(entry_ids):
                    raise MatchCommitError(
                        f"Expected to consume {len(entry_ids)} queue entries, removed {removed}"
                    )
                if not self.fields.mark_slot_consumed(schedule.slot, conn=conn):
                    raise MatchCommitError(
                        f"Slot {schedule.slot.slot_id} at {schedule.field.field_id} already consumed"
                    )
        except MatchCommitError as e:
            logger.error(f"Rolled back {mode} match: {e}")
            raise
        except Exception as e:
            logger.error(f"Rolled back {mode} match: {e}")
            raise MatchCommitError(str(e)) from e
        return game_id

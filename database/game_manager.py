"""
Game persistence for the pickup matchmaking system.
"""

import sqlite3
import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple
from models.game import (
    Game, GamePlayer, ACTIVE_STATUSES, GAME_STATUSES,
    STATUS_SCHEDULED, STATUS_IN_PROGRESS, STATUS_ENDED
)
from matchmaking.errors import DependencyUnavailable, InvalidStatusTransition
from utils.time_utils import TimeUtils

logger = logging.getLogger(__name__)

_ALLOWED_TRANSITIONS = {
    STATUS_SCHEDULED: (STATUS_IN_PROGRESS, STATUS_ENDED),
    STATUS_IN_PROGRESS: (STATUS_ENDED,),
    STATUS_ENDED: ()
}


class GameManager:
    """Manages game records and the booked-games view of each field."""

    def __init__(self, database_manager):
        self.db_manager = database_manager

    def create_game(self, players: Sequence[GamePlayer], mode: str, field_id: str,
                    start_time: datetime, end_time: datetime,
                    conn: Optional[sqlite3.Connection] = None) -> int:
        """
        Persist a scheduled game with its roster.
        Runs inside ``conn`` when given so the caller controls the commit.
        Returns the new game id.
        """
        if conn is None:
            with self.db_manager.transaction() as own_conn:
                return self.create_game(players, mode, field_id, start_time, end_time, own_conn)

        cursor = conn.execute("""
            INSERT INTO games (mode, field_id, start_time, end_time, status)
            VALUES (?, ?, ?, ?, ?)
        """, (mode, field_id, TimeUtils.to_db(start_time), TimeUtils.to_db(end_time), STATUS_SCHEDULED))
        game_id = cursor.lastrowid

        conn.executemany("""
            INSERT INTO game_players (game_id, player_id, team, seat) VALUES (?, ?, ?, ?)
        """, [(game_id, p.player_id, p.team, seat) for seat, p in enumerate(players)])

        logger.info(f"Created {mode} game {game_id} at field {field_id} "
                    f"({start_time:%Y-%m-%d %H:%M} - {end_time:%H:%M}) with {len(players)} players")
        return game_id

    def get_game(self, game_id: int) -> Optional[Game]:
        """Get a game with its roster in seat order."""
        with self.db_manager.transaction() as conn:
            row = conn.execute("""
                SELECT game_id, mode, field_id, start_time, end_time, status, created_at
                FROM games WHERE game_id = ?
            """, (game_id,)).fetchone()
            if row is None:
                return None
            roster = conn.execute(
                "SELECT player_id, team FROM game_players WHERE game_id = ? ORDER BY seat",
                (game_id,)
            ).fetchall()

        game = self._row_to_game(row)
        game.players = [GamePlayer(player_id=pid, team=team) for pid, team in roster]
        return game

    def get_games(self, mode: Optional[str] = None, status: Optional[str] = None) -> List[Game]:
        """All games, optionally filtered, ordered by start time."""
        query = "SELECT game_id, mode, field_id, start_time, end_time, status, created_at FROM games"
        conditions = []
        params: List[str] = []
        if mode is not None:
            conditions.append("mode = ?")
            params.append(mode)
        if status is not None:
            conditions.append("status = ?")
            params.append(status)
        if conditions:
            query += " WHERE " + " AND ".join(conditions)
        query += " ORDER BY start_time, game_id"

        with self.db_manager.transaction() as conn:
            rows = conn.execute(query, params).fetchall()
            rosters: Dict[int, List[GamePlayer]] = {}
            for game_id, player_id, team in conn.execute(
                    "SELECT game_id, player_id, team FROM game_players ORDER BY game_id, seat"):
                rosters.setdefault(game_id, []).append(GamePlayer(player_id=player_id, team=team))

        games = []
        for row in rows:
            game = self._row_to_game(row)
            game.players = rosters.get(game.game_id, [])
            games.append(game)
        return games

    def booked_games(self, field_id: str, window_start: datetime, window_end: datetime,
                     conn: Optional[sqlite3.Connection] = None) -> List[Tuple[datetime, datetime]]:
        """
        Intervals of scheduled or in-progress games at a field that touch
        ``[window_start, window_end]``, ordered by start. Reads through
        ``conn`` when given so a commit sees its own locked snapshot.
        """
        if conn is None:
            try:
                with self.db_manager.transaction() as own_conn:
                    return self.booked_games(field_id, window_start, window_end, own_conn)
            except sqlite3.Error as e:
                logger.error(f"Game store unavailable for field {field_id}: {e}")
                raise DependencyUnavailable(f"game store: {e}") from e

        placeholders = ", ".join("?" for _ in ACTIVE_STATUSES)
        rows = conn.execute(f"""
            SELECT start_time, end_time FROM games
            WHERE field_id = ? AND status IN ({placeholders})
              AND start_time <= ? AND end_time >= ?
            ORDER BY start_time
        """, (field_id, *ACTIVE_STATUSES,
              TimeUtils.to_db(window_end), TimeUtils.to_db(window_start))).fetchall()

        return [(TimeUtils.from_db(start), TimeUtils.from_db(end)) for start, end in rows]

    def update_status(self, game_id: int, status: str) -> Game:
        """Move a game to a new status; ended is terminal."""
        if status not in GAME_STATUSES:
            raise InvalidStatusTransition(f"Unknown game status: {status}")

        with self.db_manager.transaction() as conn:
            row = conn.execute("SELECT status FROM games WHERE game_id = ?", (game_id,)).fetchone()
            if row is None:
                raise KeyError(f"Unknown game: {game_id}")
            current = row[0]
            if status not in _ALLOWED_TRANSITIONS[current]:
                raise InvalidStatusTransition(f"Game {game_id}: {current} -> {status} not allowed")
            conn.execute("UPDATE games SET status = ? WHERE game_id = ?", (status, game_id))

        logger.info(f"Game {game_id} status {current} -> {status}")
        return self.get_game(game_id)

    @staticmethod
    def _row_to_game(row) -> Game:
        return Game(
            game_id=row[0],
            mode=row[1],
            field_id=row[2],
            start_time=TimeUtils.from_db(row[3]),
            end_time=TimeUtils.from_db(row[4]),
            status=row[5],
            created_at=TimeUtils.from_db(row[6])
        )

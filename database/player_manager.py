"""
Player management for the pickup matchmaking system.

Player records are owned by the registration side of the product; the
matchmaking core only reads them. Import and filler generation live here
so a standalone deployment can be populated.
"""

import sqlite3
import pandas as pd
import logging
from typing import Dict, Iterable, List, Optional
from models.player import PlayerRecord
from matchmaking.errors import DependencyUnavailable, PlayerNotFound
from utils.time_utils import TimeUtils

logger = logging.getLogger(__name__)

_PLAYER_COLUMNS = (
    "player_id, name, category, rating_small, rating_large, latitude, longitude, "
    "skill_level, is_filler, created_at"
)

FILLER_CATEGORIES = ('male', 'female')
FILLER_PREFIX = 'filler-'


class PlayerManager:
    """Manages player-related database operations."""

    def __init__(self, database_manager):
        self.db_manager = database_manager
        self.config = database_manager.config

    def rating_for_skill_level(self, skill_level: Optional[str]) -> float:
        """Map a declared skill level to its starting rating."""
        levels = self.config.get('skill_levels', {})
        default = levels.get('beginner', 300)
        if not skill_level:
            return float(default)
        return float(levels.get(str(skill_level).strip().lower(), default))

    def register_player(self, player_id: str, name: str, category: str,
                        skill_level: Optional[str] = None,
                        latitude: Optional[float] = None, longitude: Optional[float] = None,
                        rating_small: Optional[float] = None,
                        rating_large: Optional[float] = None) -> PlayerRecord:
        """Create or update a player, deriving missing ratings from the skill level."""
        base_rating = self.rating_for_skill_level(skill_level)
        record = PlayerRecord(
            player_id=str(player_id),
            name=name,
            category=category.lower(),
            rating_small=base_rating if rating_small is None else float(rating_small),
            rating_large=base_rating if rating_large is None else float(rating_large),
            latitude=latitude,
            longitude=longitude,
            skill_level=skill_level
        )
        self.save_player(record)
        return record

    def save_player(self, record: PlayerRecord) -> None:
        """Insert or replace a player record."""
        with self.db_manager.transaction() as conn:
            conn.execute("""
                INSERT INTO players (
                    player_id, name, category, rating_small, rating_large,
                    latitude, longitude, skill_level, is_filler
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(player_id) DO UPDATE SET
                    name = excluded.name, category = excluded.category,
                    rating_small = excluded.rating_small, rating_large = excluded.rating_large,
                    latitude = excluded.latitude, longitude = excluded.longitude,
                    skill_level = excluded.skill_level, is_filler = excluded.is_filler
            """, (
                record.player_id, record.name, record.category, record.rating_small,
                record.rating_large, record.latitude, record.longitude,
                record.skill_level, int(record.is_filler)
            ))
        logger.debug(f"Saved player {record.player_id} ({record.name})")

    def load_players_from_csv(self, csv_file: str) -> int:
        """
        Load players from CSV file and update database.
        Returns the number of players processed.
        """
        df = pd.read_csv(csv_file)
        logger.info(f"Loaded CSV with {len(df)} rows")

        players_processed = 0
        for _, row in df.iterrows():
            if self._process_csv_row(row):
                players_processed += 1

        logger.info(f"Processed {players_processed} players from CSV")
        return players_processed

    def _process_csv_row(self, row: pd.Series) -> bool:
        """Process a single CSV row and update database."""
        player_id = row.get('player_id')
        name = row.get('name')
        category = row.get('category')

        # Skip if essential fields are missing
        if pd.isna(player_id) or pd.isna(name) or pd.isna(category):
            return False

        try:
            self.register_player(
                player_id=str(player_id),
                name=str(name),
                category=str(category),
                skill_level=self._optional(row.get('skill_level'), str),
                latitude=self._optional(row.get('latitude'), float),
                longitude=self._optional(row.get('longitude'), float),
                rating_small=self._optional(row.get('rating_small'), float),
                rating_large=self._optional(row.get('rating_large'), float)
            )
        except (ValueError, TypeError) as e:
            logger.warning(f"Skipping player row {player_id}: {e}")
            return False
        return True

    @staticmethod
    def _optional(value, cast):
        if value is None or pd.isna(value):
            return None
        return cast(value)

    def get_player(self, player_id: str) -> PlayerRecord:
        """Look up a player by id."""
        try:
            with self.db_manager.transaction() as conn:
                row = conn.execute(
                    f"SELECT {_PLAYER_COLUMNS} FROM players WHERE player_id = ?",
                    (str(player_id),)
                ).fetchone()
        except sqlite3.Error as e:
            logger.error(f"Player store unavailable looking up {player_id}: {e}")
            raise DependencyUnavailable(f"player store: {e}") from e

        if row is None:
            raise PlayerNotFound(player_id)
        return self._row_to_record(row)

    def get_players(self, player_ids: Iterable[str]) -> Dict[str, PlayerRecord]:
        """Look up several players; unknown ids raise PlayerNotFound."""
        ids = [str(pid) for pid in player_ids]
        if not ids:
            return {}
        placeholders = ", ".join("?" for _ in ids)
        try:
            with self.db_manager.transaction() as conn:
                rows = conn.execute(
                    f"SELECT {_PLAYER_COLUMNS} FROM players WHERE player_id IN ({placeholders})",
                    ids
                ).fetchall()
        except sqlite3.Error as e:
            logger.error(f"Player store unavailable: {e}")
            raise DependencyUnavailable(f"player store: {e}") from e

        records = {row[0]: self._row_to_record(row) for row in rows}
        for pid in ids:
            if pid not in records:
                raise PlayerNotFound(pid)
        return records

    def get_all_players(self, include_fillers: bool = True) -> List[PlayerRecord]:
        """Get all players ordered by id."""
        query = f"SELECT {_PLAYER_COLUMNS} FROM players"
        if not include_fillers:
            query += " WHERE is_filler = 0"
        query += " ORDER BY player_id"
        with self.db_manager.transaction() as conn:
            return [self._row_to_record(row) for row in conn.execute(query).fetchall()]

    def get_filler_candidates(self, category: str, limit: int,
                              exclude_ids: Iterable[str] = ()) -> List[PlayerRecord]:
        """
        Supply up to ``limit`` synthetic players of a category, for queue
        shortfalls. Players in ``exclude_ids`` are never returned.
        """
        if limit <= 0:
            return []
        excluded = set(str(pid) for pid in exclude_ids)
        try:
            with self.db_manager.transaction() as conn:
                rows = conn.execute(
                    f"SELECT {_PLAYER_COLUMNS} FROM players "
                    "WHERE is_filler = 1 AND category = ? ORDER BY rowid",
                    (category.lower(),)
                ).fetchall()
        except sqlite3.Error as e:
            logger.error(f"Player store unavailable fetching fillers: {e}")
            raise DependencyUnavailable(f"player store: {e}") from e

        fillers = []
        for row in rows:
            if row[0] in excluded:
                continue
            fillers.append(self._row_to_record(row))
            if len(fillers) == limit:
                break
        logger.debug(f"Supplied {len(fillers)}/{limit} filler players for category {category}")
        return fillers

    def create_filler_players(self, count: int, latitude: Optional[float] = None,
                              longitude: Optional[float] = None) -> int:
        """
        Create a pool of synthetic players. Categories alternate, and the
        skill level steps up every 20 players.
        Returns the number of players created.
        """
        levels = list(self.config.get('skill_levels', {}).keys()) or ['beginner']
        created = 0
        for i in range(count):
            player_id = f"{FILLER_PREFIX}{i + 1}"
            skill_level = levels[min(i // 20, len(levels) - 1)]
            rating = self.rating_for_skill_level(skill_level)
            record = PlayerRecord(
                player_id=player_id,
                name=f"Filler{i + 1}",
                category=FILLER_CATEGORIES[i % 2],
                rating_small=rating,
                rating_large=rating,
                latitude=latitude,
                longitude=longitude,
                skill_level=skill_level,
                is_filler=True
            )
            self.save_player(record)
            created += 1

        logger.info(f"Created {created} filler players")
        return created

    @staticmethod
    def _row_to_record(row) -> PlayerRecord:
        return PlayerRecord(
            player_id=row[0],
            name=row[1],
            category=row[2],
            rating_small=row[3],
            rating_large=row[4],
            latitude=row[5],
            longitude=row[6],
            skill_level=row[7],
            is_filler=bool(row[8]),
            created_at=TimeUtils.from_db(row[9])
        )



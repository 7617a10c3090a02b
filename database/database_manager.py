"""
Core database management for the pickup matchmaking system.
"""

import sqlite3
import logging
from contextlib import contextmanager
from typing import Dict, Any, Iterator
from config.config_manager import ConfigManager

logger = logging.getLogger(__name__)

_TABLES = ('players', 'queue_entries', 'fields', 'field_slots', 'games', 'game_players', 'penalties')


class DatabaseManager:
    """Manages core database operations and initialization."""

    def __init__(self, db_path: str = "pickup.db", config_file: str = "config.yaml"):
        self.db_path = db_path
        self.config: Dict[str, Any] = ConfigManager.load_config(config_file)
        self.init_database()

    def init_database(self) -> None:
        """Initialize the database with required tables."""
        with self.transaction() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS players (
                    player_id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    category TEXT NOT NULL,
                    rating_small REAL NOT NULL,
                    rating_large REAL NOT NULL,
                    latitude REAL,
                    longitude REAL,
                    skill_level TEXT,
                    is_filler INTEGER NOT NULL DEFAULT 0,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

            # One active entry per (player, mode)
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS queue_entries (
                    entry_id INTEGER PRIMARY KEY AUTOINCREMENT,
                    player_id TEXT NOT NULL,
                    mode TEXT NOT NULL,
                    enqueued_at TIMESTAMP NOT NULL,
                    UNIQUE (player_id, mode)
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS fields (
                    field_id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    size TEXT NOT NULL DEFAULT 'both',
                    latitude REAL NOT NULL,
                    longitude REAL NOT NULL,
                    image_url TEXT
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS field_slots (
                    slot_id INTEGER PRIMARY KEY AUTOINCREMENT,
                    field_id TEXT NOT NULL,
                    day_date TIMESTAMP NOT NULL,
                    slot_index INTEGER NOT NULL,
                    start_time TIMESTAMP NOT NULL,
                    end_time TIMESTAMP NOT NULL,
                    is_available INTEGER NOT NULL DEFAULT 1,
                    FOREIGN KEY (field_id) REFERENCES fields (field_id)
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS games (
                    game_id INTEGER PRIMARY KEY AUTOINCREMENT,
                    mode TEXT NOT NULL,
                    field_id TEXT NOT NULL,
                    start_time TIMESTAMP NOT NULL,
                    end_time TIMESTAMP NOT NULL,
                    status TEXT NOT NULL DEFAULT 'scheduled',
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS game_players (
                    game_id INTEGER NOT NULL,
                    player_id TEXT NOT NULL,
                    team TEXT NOT NULL,
                    seat INTEGER NOT NULL,
                    PRIMARY KEY (game_id, player_id),
                    FOREIGN KEY (game_id) REFERENCES games (game_id)
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS penalties (
                    player_id TEXT PRIMARY KEY,
                    leave_count INTEGER NOT NULL DEFAULT 0,
                    last_penalty_at TIMESTAMP,
                    suspension_end TIMESTAMP
                )
            """)

            cursor.execute("CREATE INDEX IF NOT EXISTS idx_queue_mode ON queue_entries(mode, enqueued_at)")
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_slots_field ON field_slots(field_id, day_date, slot_index)")
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_games_field ON games(field_id, start_time)")

        logger.info("Database initialized successfully")

    def get_connection(self) -> sqlite3.Connection:
        """Get a database connection."""
        return sqlite3.connect(self.db_path, timeout=30)

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection; commit on success, roll back on any error."""
        conn = self.get_connection()
        try:
            yield conn
            conn.commit()
        except BaseException:
            conn.rollback()
            raise
        finally:
            conn.close()

    def get_database_stats(self) -> Dict[str, int]:
        """Get row counts for every table."""
        with self.transaction() as conn:
            cursor = conn.cursor()
            stats = {}
            for table in _TABLES:
                cursor.execute(f"SELECT COUNT(*) FROM {table}")
                stats[table] = cursor.fetchone()[0]
            return stats

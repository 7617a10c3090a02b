"""
Database package for the pickup matchmaking system.
"""

from .database_manager import DatabaseManager
from .player_manager import PlayerManager
from .field_manager import FieldManager
from .game_manager import GameManager
from .queue_store import QueueStore
from .penalty_store import PenaltyStore

__all__ = ['DatabaseManager', 'PlayerManager', 'FieldManager', 'GameManager', 'QueueStore', 'PenaltyStore']

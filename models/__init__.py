"""
Models package for the pickup matchmaking system.

This package contains all data models and dataclasses used throughout the system.
"""

from .player import PlayerRecord, MODE_SMALL, MODE_LARGE, GAME_MODES
from .field import Field, AvailabilityDay, Slot, SlotReference
from .game import Game, GamePlayer, ScheduleResult, MatchResult, PlayerSummary
from .queue import QueueEntry, QueuedAck, AlreadyQueued, LeftAck, NotQueued
from .penalty import PenaltyRecord, PenaltyStatus, PenaltyApplied, NoPenalty

__all__ = [
    'PlayerRecord', 'MODE_SMALL', 'MODE_LARGE', 'GAME_MODES',
    'Field', 'AvailabilityDay', 'Slot', 'SlotReference',
    'Game', 'GamePlayer', 'ScheduleResult', 'MatchResult', 'PlayerSummary',
    'QueueEntry', 'QueuedAck', 'AlreadyQueued', 'LeftAck', 'NotQueued',
    'PenaltyRecord', 'PenaltyStatus', 'PenaltyApplied', 'NoPenalty'
]

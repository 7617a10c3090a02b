"""
Leaver penalty models.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class PenaltyRecord:
    """Database record holding a player's leaver tally."""
    player_id: str
    leave_count: int = 0
    last_penalty_at: Optional[datetime] = None
    suspension_end: Optional[datetime] = None


@dataclass
class PenaltyStatus:
    """Current suspension state of a player."""
    is_suspended: bool
    suspension_end: Optional[datetime]
    tally: int


@dataclass
class PenaltyApplied:
    """A leave was penalized."""
    tally: int
    suspension_end: Optional[datetime] = None


@dataclass
class NoPenalty:
    """A leave far enough ahead of the game carries no penalty."""
    tally: int = 0

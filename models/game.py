"""
Game, schedule and match result models.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from .field import Field, SlotReference
from .player import PlayerRecord

STATUS_SCHEDULED = 'scheduled'
STATUS_IN_PROGRESS = 'in_progress'
STATUS_ENDED = 'ended'
GAME_STATUSES = (STATUS_SCHEDULED, STATUS_IN_PROGRESS, STATUS_ENDED)
ACTIVE_STATUSES = (STATUS_SCHEDULED, STATUS_IN_PROGRESS)

TEAM_A = 'A'
TEAM_B = 'B'


@dataclass
class GamePlayer:
    """A player's seat in a game."""
    player_id: str
    team: str


@dataclass
class Game:
    """Database record for a game."""
    game_id: int
    mode: str
    field_id: str
    start_time: datetime
    end_time: datetime
    status: str = STATUS_SCHEDULED
    players: List[GamePlayer] = field(default_factory=list)
    created_at: Optional[datetime] = None

    def team(self, team: str) -> List[str]:
        return [p.player_id for p in self.players if p.team == team]


@dataclass
class ScheduleResult:
    """A venue and conflict-free time chosen for a game."""
    field: Field
    start_time: datetime
    end_time: datetime
    slot: SlotReference


@dataclass
class PlayerSummary:
    """Player details returned to the caller with a match."""
    player_id: str
    name: str
    rating: float
    is_filler: bool = False

    @classmethod
    def from_record(cls, record: PlayerRecord, mode: str) -> 'PlayerSummary':
        return cls(
            player_id=record.player_id,
            name=record.name,
            rating=record.rating_for(mode),
            is_filler=record.is_filler
        )


@dataclass
class MatchResult:
    """Outcome of a successful match: both teams, venue and time."""
    game_id: int
    mode: str
    team_a: List[PlayerSummary]
    team_b: List[PlayerSummary]
    field_id: str
    field_name: str
    start_time: datetime
    end_time: datetime

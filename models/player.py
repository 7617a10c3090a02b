"""
Player data models for the pickup matchmaking system.
"""

from dataclasses import dataclass
from typing import Optional, Tuple
from datetime import datetime

MODE_SMALL = 'small'
MODE_LARGE = 'large'
GAME_MODES = (MODE_SMALL, MODE_LARGE)


@dataclass
class PlayerRecord:
    """Database record for a player."""
    player_id: str
    name: str
    category: str
    rating_small: float
    rating_large: float
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    skill_level: Optional[str] = None
    is_filler: bool = False
    created_at: Optional[datetime] = None

    def rating_for(self, mode: str) -> float:
        """Skill rating used for the given game mode."""
        if mode == MODE_SMALL:
            return self.rating_small
        if mode == MODE_LARGE:
            return self.rating_large
        raise ValueError(f"Unknown game mode: {mode}")

    @property
    def location(self) -> Optional[Tuple[float, float]]:
        if self.latitude is None or self.longitude is None:
            return None
        return (self.latitude, self.longitude)

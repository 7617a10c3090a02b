"""
Error taxonomy for matchmaking, scheduling and penalties.

Everything except MatchCommitError is recoverable at the request level:
the player stays queued and persisted state is untouched.
"""

from datetime import datetime
from typing import Optional


class PickupError(Exception):
    """Base class for all matchmaking errors."""


class InsufficientPlayers(PickupError):
    """Not enough real and filler candidates to fill both rosters."""

    def __init__(self, mode: str, needed: int, available: int):
        self.mode = mode
        self.needed = needed
        self.available = available
        super().__init__(f"{mode}: need {needed} players, have {available}")


class NoSlotFound(PickupError):
    """No field and time satisfies the scheduling constraints."""


class DependencyUnavailable(PickupError):
    """A player, field or game store could not be reached."""


class MatchCommitError(PickupError):
    """Persisting a match failed; the attempt was rolled back."""


class PlayerNotFound(PickupError):
    """No player record for the given id."""

    def __init__(self, player_id: str):
        self.player_id = player_id
        super().__init__(f"Unknown player: {player_id}")


class PlayerSuspended(PickupError):
    """Player is serving a leaver suspension."""

    def __init__(self, player_id: str, suspension_end: Optional[datetime]):
        self.player_id = player_id
        self.suspension_end = suspension_end
        super().__init__(f"Player {player_id} is suspended until {suspension_end}")


class InvalidMode(PickupError):
    """Game mode outside the configured modes."""


class InvalidStatusTransition(PickupError):
    """Game status change not allowed from the current status."""

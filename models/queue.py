"""
Queue entry model and queue request/response records.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class QueueEntry:
    """An active request by a player to be matched in a mode."""
    player_id: str
    mode: str
    enqueued_at: datetime
    entry_id: Optional[int] = None


@dataclass
class QueuedAck:
    """Player was queued; no match could be formed yet."""
    entry: QueueEntry
    reason: Optional[str] = None


@dataclass
class AlreadyQueued:
    """Player already holds an active entry for this mode."""
    entry: QueueEntry


@dataclass
class LeftAck:
    """Player's pending entry was cancelled."""
    entry: QueueEntry


@dataclass
class NotQueued:
    """Leave request for a player with no active entry."""
    player_id: str
    mode: str

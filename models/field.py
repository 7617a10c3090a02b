"""
Field (venue) and availability calendar models.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Tuple

SIZE_BOTH = 'both'


@dataclass
class Slot:
    """A fixed bookable interval on a field's calendar."""
    start_time: datetime
    end_time: datetime
    is_available: bool = True
    slot_id: Optional[int] = None


@dataclass
class AvailabilityDay:
    """One calendar day of a field, holding its slots in order."""
    date: datetime
    slots: List[Slot] = field(default_factory=list)


@dataclass
class SlotReference:
    """Identifies the calendar slot a scheduled game consumes."""
    field_id: str
    slot_id: Optional[int]
    day_index: int
    slot_index: int


@dataclass
class Field:
    """A venue with its supported size and availability calendar."""
    field_id: str
    name: str
    latitude: float
    longitude: float
    size: str = SIZE_BOTH
    availability: List[AvailabilityDay] = field(default_factory=list)
    image_url: Optional[str] = None
    distance_km: Optional[float] = None

    @property
    def location(self) -> Tuple[float, float]:
        return (self.latitude, self.longitude)

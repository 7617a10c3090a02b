"""
Venue and time-slot selection for a matched group of players.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence, Tuple
from models.field import Field, SlotReference
from models.game import ScheduleResult
from models.player import PlayerRecord
from matchmaking.errors import NoSlotFound
from utils.geo_utils import GeoMath

logger = logging.getLogger(__name__)


class FieldScheduler:
    """Finds a reachable field and a conflict-free slot within the horizon."""

    def __init__(self, field_index, game_store, settings: Dict[str, Any], geo: GeoMath = None):
        self.field_index = field_index
        self.game_store = game_store
        self.geo = geo or GeoMath()
        self.initial_radius_km = float(settings.get('initial_radius_km', 10.0))
        self.max_radius_km = float(settings.get('max_radius_km', 80.467))
        self.travel_speed_kmh = float(settings.get('travel_speed_kmh', 50.0))
        self.travel_buffer = timedelta(minutes=settings.get('travel_buffer_minutes', 10))
        self.horizon = timedelta(hours=settings.get('horizon_hours', 4))
        self.game_gap = timedelta(minutes=settings.get('game_gap_minutes', 60))

    def search_fields(self, center: Tuple[float, float], mode: str) -> Tuple[List[Field], float]:
        """
        Radius search around ``center``, doubling from the initial radius
        until a field turns up or the next radius would pass the ceiling.
        Returns the fields found and the radius that found them.
        """
        radius = self.initial_radius_km
        while radius <= self.max_radius_km:
            fields = self.field_index.find_nearby(center, radius, mode)
            logger.info(f"Found {len(fields)} potential {mode} fields within {radius:g} km")
            if fields:
                return fields, radius
            radius *= 2
        return [], radius

    def earliest_start(self, players: Sequence[PlayerRecord], field: Field, now: datetime) -> datetime:
        """Now plus the slowest player's travel time plus the fixed buffer."""
        max_travel = 0
        for player in players:
            if player.location is None:
                continue
            minutes = self.geo.travel_minutes(player.location, field.location, self.travel_speed_kmh)
            max_travel = max(max_travel, minutes)
        return now + timedelta(minutes=max_travel) + self.travel_buffer

    def conflict_reason(self, field_id: str, start: datetime, end: datetime,
                        conn=None) -> Optional[str]:
        """
        Why ``[start, end)`` cannot be booked at a field, or None if it can:
        it must not overlap a booked game and must keep the minimum gap to
        the nearest game on either side.
        """
        booked = self.game_store.booked_games(field_id, start - self.game_gap, end + self.game_gap, conn=conn)
        for booked_start, booked_end in booked:
            if booked_start < end and booked_end > start:
                return f"overlaps game {booked_start:%H:%M}-{booked_end:%H:%M}"

        before = [b_end for _, b_end in booked if b_end <= start]
        after = [b_start for b_start, _ in booked if b_start >= end]
        if before and start - max(before) < self.game_gap:
            return f"too close to game ending {max(before):%H:%M}"
        if after and min(after) - end < self.game_gap:
            return f"too close to game starting {min(after):%H:%M}"
        return None

    def find_slot(self, players: Sequence[PlayerRecord], mode: str,
                  duration_minutes: int, now: datetime) -> ScheduleResult:
        """Pick the first feasible slot in field, day, slot order."""
        located = [p.location for p in players if p.location is not None]
        center = self.geo.centroid(located)
        if center is None:
            raise NoSlotFound("No player coordinates to search around")
        logger.info(f"Searching {mode} fields around ({center[0]:.5f}, {center[1]:.5f})")

        fields, radius = self.search_fields(center, mode)
        if not fields:
            raise NoSlotFound(f"No {mode} fields within {self.max_radius_km:g} km")

        duration = timedelta(minutes=duration_minutes)
        horizon_end = now + self.horizon

        for field in fields:
            if not field.availability:
                logger.debug(f"Field {field.name} has no availability data")
                continue

            earliest = self.earliest_start(players, field, now)
            logger.debug(f"Field {field.name}: earliest start {earliest:%Y-%m-%d %H:%M}")

            days = sorted(enumerate(field.availability), key=lambda item: item[1].date)
            for day_index, day in days:
                if day.date > horizon_end:
                    break

                slots = sorted(enumerate(day.slots), key=lambda item: item[1].start_time)
                for slot_index, slot in slots:
                    if slot.start_time < earliest or slot.start_time > horizon_end or not slot.is_available:
                        logger.debug(f"Slot rejected: start={slot.start_time}, available={slot.is_available}")
                        continue

                    start = slot.start_time
                    end = start + duration
                    reason = self.conflict_reason(field.field_id, start, max(end, slot.end_time))
                    if reason:
                        logger.debug(f"Slot {start:%H:%M} at {field.name} rejected: {reason}")
                        continue

                    logger.info(f"Selected slot {start:%Y-%m-%d %H:%M} at {field.name}")
                    return ScheduleResult(
                        field=field,
                        start_time=start,
                        end_time=end,
                        slot=SlotReference(
                            field_id=field.field_id,
                            slot_id=slot.slot_id,
                            day_index=day_index,
                            slot_index=slot_index
                        )
                    )

        raise NoSlotFound(f"No available {mode} slot within {self.horizon} at {len(fields)} fields")

    def confirm(self, schedule: ScheduleResult, conn=None) -> bool:
        """
        Re-check a chosen slot right before it is committed. Pass the
        commit's connection to check inside its write lock.
        """
        if not self.field_index.is_slot_available(schedule.slot, conn=conn):
            return False
        slot_end = schedule.end_time
        for day in schedule.field.availability:
            for slot in day.slots:
                if slot.slot_id is not None and slot.slot_id == schedule.slot.slot_id:
                    slot_end = max(slot_end, slot.end_time)
        return self.conflict_reason(schedule.field.field_id, schedule.start_time, slot_end, conn=conn) is None

"""
Field availability index for the pickup matchmaking system.

Venues and their slot calendars are stored in sqlite. The index answers
radius searches (nearest first) and hands calendars to the scheduler; it
only flips a slot's availability when a committed game consumes it.
"""

import sqlite3
import logging
import requests
import pandas as pd
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple
from models.field import Field, AvailabilityDay, Slot, SlotReference, SIZE_BOTH
from matchmaking.errors import DependencyUnavailable
from utils.geo_utils import GeoMath
from utils.time_utils import TimeUtils

logger = logging.getLogger(__name__)

FIELD_SIZES = ('small', 'large', SIZE_BOTH)


class FieldManager:
    """Manages venues and their availability calendars."""

    def __init__(self, database_manager, session: Optional[requests.Session] = None):
        self.db_manager = database_manager
        self.config = database_manager.config
        self.session = session or requests.Session()

    def add_field(self, field: Field) -> None:
        """Insert or replace a field together with its calendar."""
        if field.size not in FIELD_SIZES:
            raise ValueError(f"Unknown field size: {field.size}")

        with self.db_manager.transaction() as conn:
            conn.execute("""
                INSERT OR REPLACE INTO fields (field_id, name, size, latitude, longitude, image_url)
                VALUES (?, ?, ?, ?, ?, ?)
            """, (field.field_id, field.name, field.size, field.latitude,
                  field.longitude, field.image_url))
            conn.execute("DELETE FROM field_slots WHERE field_id = ?", (field.field_id,))
            self._insert_calendar(conn, field.field_id, field.availability)

        logger.info(f"Stored field {field.name} ({field.field_id}) with {len(field.availability)} days")

    def _insert_calendar(self, conn: sqlite3.Connection, field_id: str,
                         availability: List[AvailabilityDay]) -> None:
        for day in availability:
            for index, slot in enumerate(day.slots):
                cursor = conn.execute("""
                    INSERT INTO field_slots (field_id, day_date, slot_index, start_time, end_time, is_available)
                    VALUES (?, ?, ?, ?, ?, ?)
                """, (field_id, TimeUtils.to_db(day.date), index,
                      TimeUtils.to_db(slot.start_time), TimeUtils.to_db(slot.end_time),
                      int(slot.is_available)))
                slot.slot_id = cursor.lastrowid

    @staticmethod
    def generate_availability(now: datetime, days: int = 7,
                              is_available: Optional[Callable[[datetime], bool]] = None
                              ) -> List[AvailabilityDay]:
        """
        Build an hourly calendar for the next ``days`` days, each day
        starting at midnight. ``is_available`` decides each slot's flag
        (all slots are available when omitted).
        """
        availability = []
        first_day = TimeUtils.start_of_day(now)
        for offset in range(days):
            date = first_day + timedelta(days=offset)
            slots = []
            for hour in range(24):
                start = date + timedelta(hours=hour)
                slots.append(Slot(
                    start_time=start,
                    end_time=start + timedelta(hours=1),
                    is_available=True if is_available is None else bool(is_available(start))
                ))
            availability.append(AvailabilityDay(date=date, slots=slots))
        return availability

    def load_fields_from_csv(self, csv_file: str, now: datetime, days: int = 7) -> int:
        """
        Load venues from a CSV file (field_id, name, size, latitude,
        longitude) and give each a fresh hourly calendar.
        Returns the number of fields stored.
        """
        df = pd.read_csv(csv_file)
        logger.info(f"Loaded field CSV with {len(df)} rows")

        stored = 0
        for _, row in df.iterrows():
            if pd.isna(row.get('name')) or pd.isna(row.get('latitude')) or pd.isna(row.get('longitude')):
                continue
            field_id = row.get('field_id')
            size = row.get('size')
            image_url = row.get('image_url')
            try:
                field = Field(
                    field_id=str(field_id) if not pd.isna(field_id) else self._slug(str(row['name'])),
                    name=str(row['name']),
                    latitude=float(row['latitude']),
                    longitude=float(row['longitude']),
                    size=str(size).lower() if not pd.isna(size) else SIZE_BOTH,
                    availability=self.generate_availability(now, days),
                    image_url=str(image_url) if not pd.isna(image_url) else None
                )
                self.add_field(field)
            except ValueError as e:
                logger.warning(f"Skipping field row {row.get('name')}: {e}")
                continue
            stored += 1

        logger.info(f"Stored {stored} fields from CSV")
        return stored

    def fetch_fields_from_api(self, latitude: float, longitude: float,
                              radius_m: int = 10000) -> List[Dict[str, Any]]:
        """Look up venues near a point through the configured geocoding API."""
        api_config = self.config.get('field_api', {})
        params = {
            'access_token': api_config.get('access_token', ''),
            'proximity': f"{longitude},{latitude}",
            'types': 'poi',
            'limit': api_config.get('limit', 10),
            'radius': radius_m
        }
        try:
            response = self.session.get(api_config.get('url'), params=params,
                                        timeout=api_config.get('timeout', 30))
            response.raise_for_status()
            features = response.json().get('features', [])
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Error fetching field data: {e}")
            raise DependencyUnavailable(f"field API: {e}") from e

        fields = []
        for place in features:
            center = place.get('center') or []
            if len(center) != 2:
                continue
            fields.append({
                'field_id': str(place.get('id')),
                'name': place.get('text'),
                'latitude': center[1],
                'longitude': center[0],
                'size': SIZE_BOTH
            })
        logger.info(f"Fetched {len(fields)} fields near ({latitude}, {longitude})")
        return fields

    def import_fields_from_api(self, latitude: float, longitude: float, now: datetime,
                               radius_m: int = 10000, days: int = 7) -> int:
        """
        Store the venues found near a point, each with a fresh hourly
        calendar. Returns the number of fields stored.
        """
        stored = 0
        for data in self.fetch_fields_from_api(latitude, longitude, radius_m):
            if not data['name']:
                continue
            self.add_field(Field(
                field_id=data['field_id'],
                name=data['name'],
                latitude=float(data['latitude']),
                longitude=float(data['longitude']),
                size=data['size'],
                availability=self.generate_availability(now, days)
            ))
            stored += 1

        logger.info(f"Stored {stored} fields from the field API")
        return stored

    def field_sizes(self, mode: str) -> List[str]:
        """Field sizes a mode may play on, from ``modes.<mode>.field_sizes``."""
        mode_config = self.config.get('modes', {}).get(mode, {})
        return list(mode_config.get('field_sizes', [mode, SIZE_BOTH]))

    def find_nearby(self, point: Tuple[float, float], radius_km: float, mode: str) -> List[Field]:
        """Fields supporting ``mode`` within ``radius_km`` of ``point``, nearest first."""
        sizes = self.field_sizes(mode)
        if not sizes:
            return []
        placeholders = ", ".join("?" for _ in sizes)
        try:
            with self.db_manager.transaction() as conn:
                rows = conn.execute(
                    "SELECT field_id, name, size, latitude, longitude, image_url FROM fields "
                    f"WHERE size IN ({placeholders})",
                    tuple(sizes)
                ).fetchall()
        except sqlite3.Error as e:
            logger.error(f"Field store unavailable: {e}")
            raise DependencyUnavailable(f"field store: {e}") from e

        nearby = []
        for row in rows:
            distance = GeoMath.distance_km(point, (row[3], row[4]))
            if distance <= radius_km:
                nearby.append(Field(
                    field_id=row[0], name=row[1], size=row[2], latitude=row[3],
                    longitude=row[4], image_url=row[5], distance_km=distance
                ))

        nearby.sort(key=lambda f: f.distance_km)
        for field in nearby:
            field.availability = self.get_availability(field.field_id)
        return nearby

    def get_field(self, field_id: str) -> Optional[Field]:
        """Get a field with its calendar."""
        with self.db_manager.transaction() as conn:
            row = conn.execute(
                "SELECT field_id, name, size, latitude, longitude, image_url FROM fields WHERE field_id = ?",
                (field_id,)
            ).fetchone()
        if row is None:
            return None
        return Field(field_id=row[0], name=row[1], size=row[2], latitude=row[3],
                     longitude=row[4], image_url=row[5],
                     availability=self.get_availability(row[0]))

    def get_availability(self, field_id: str) -> List[AvailabilityDay]:
        """Calendar of a field, days by date, slots by position within the day."""
        try:
            with self.db_manager.transaction() as conn:
                rows = conn.execute("""
                    SELECT slot_id, day_date, start_time, end_time, is_available
                    FROM field_slots WHERE field_id = ?
                    ORDER BY day_date, slot_index
                """, (field_id,)).fetchall()
        except sqlite3.Error as e:
            logger.error(f"Field store unavailable reading calendar of {field_id}: {e}")
            raise DependencyUnavailable(f"field store: {e}") from e

        days: Dict[str, AvailabilityDay] = {}
        for slot_id, day_date, start, end, available in rows:
            if day_date not in days:
                days[day_date] = AvailabilityDay(date=TimeUtils.from_db(day_date))
            days[day_date].slots.append(Slot(
                start_time=TimeUtils.from_db(start),
                end_time=TimeUtils.from_db(end),
                is_available=bool(available),
                slot_id=slot_id
            ))
        return list(days.values())

    def is_slot_available(self, slot: SlotReference, conn: Optional[sqlite3.Connection] = None) -> bool:
        """Current availability flag of a calendar slot. Reads through ``conn`` when given."""
        if slot.slot_id is None:
            return True
        if conn is None:
            with self.db_manager.transaction() as own_conn:
                return self.is_slot_available(slot, own_conn)
        row = conn.execute(
            "SELECT is_available FROM field_slots WHERE slot_id = ? AND field_id = ?",
            (slot.slot_id, slot.field_id)
        ).fetchone()
        return bool(row and row[0])

    def mark_slot_consumed(self, slot: SlotReference, conn: Optional[sqlite3.Connection] = None) -> bool:
        """
        Flag a still-available slot unavailable. Runs inside ``conn`` when
        given. Returns False if the slot was already consumed.
        """
        if slot.slot_id is None:
            return False
        if conn is None:
            with self.db_manager.transaction() as own_conn:
                return self.mark_slot_consumed(slot, own_conn)
        cursor = conn.execute(
            "UPDATE field_slots SET is_available = 0 "
            "WHERE slot_id = ? AND field_id = ? AND is_available = 1",
            (slot.slot_id, slot.field_id)
        )
        return cursor.rowcount == 1

    def get_all_fields(self) -> List[Field]:
        """All fields without calendars, ordered by name."""
        with self.db_manager.transaction() as conn:
            rows = conn.execute(
                "SELECT field_id, name, size, latitude, longitude, image_url FROM fields ORDER BY name"
            ).fetchall()
        return [Field(field_id=r[0], name=r[1], size=r[2], latitude=r[3], longitude=r[4], image_url=r[5])
                for r in rows]

    @staticmethod
    def _slug(name: str) -> str:
        return '-'.join(name.lower().split())

#!/usr/bin/env python3
"""
Tests for venue search and slot selection.

Covers:
- Expanding radius search and its ceiling
- Earliest feasible start from travel time
- Slot filtering by availability, horizon and booked games
- Minimum gap to neighbouring games
"""

import os
import shutil
import tempfile
import unittest
from datetime import datetime, timedelta
from unittest.mock import MagicMock

import yaml

from database.database_manager import DatabaseManager
from database.field_manager import FieldManager
from database.game_manager import GameManager
from matchmaking.errors import NoSlotFound
from matchmaking.field_scheduler import FieldScheduler
from models.field import Field
from models.game import GamePlayer, STATUS_ENDED
from models.player import PlayerRecord

NOW = datetime(2026, 5, 4, 12, 7)


def make_player(player_id, latitude=40.0, longitude=-75.0):
    return PlayerRecord(
        player_id=player_id, name=player_id, category='male',
        rating_small=1000, rating_large=1000, latitude=latitude, longitude=longitude
    )


class TestFieldScheduler(unittest.TestCase):
    """Test cases for FieldScheduler against sqlite stores."""

    def setUp(self):
        """Set up test fixtures."""
        self.test_dir = tempfile.mkdtemp()
        self.test_db_path = os.path.join(self.test_dir, "test_scheduler.db")
        self.test_config_path = os.path.join(self.test_dir, "test_config.yaml")

        self.test_config = {
            'scheduling': {
                'initial_radius_km': 10,
                'max_radius_km': 80.467,
                'travel_speed_kmh': 50,
                'travel_buffer_minutes': 10,
                'horizon_hours': 4,
                'game_gap_minutes': 60
            }
        }
        with open(self.test_config_path, 'w') as f:
            yaml.dump(self.test_config, f)

        self.db = DatabaseManager(self.test_db_path, self.test_config_path)
        self.fields = FieldManager(self.db, session=MagicMock())
        self.games = GameManager(self.db)
        self.scheduler = FieldScheduler(self.fields, self.games, self.db.config['scheduling'])
        self.players = [make_player(f"p{i}") for i in range(10)]

    def tearDown(self):
        """Clean up test fixtures."""
        shutil.rmtree(self.test_dir)

    def _add_field(self, field_id, latitude, longitude, size='both', is_available=None):
        field = Field(
            field_id=field_id, name=field_id.title(), latitude=latitude, longitude=longitude,
            size=size, availability=FieldManager.generate_availability(NOW, 2, is_available)
        )
        self.fields.add_field(field)
        return field

    def _book(self, field_id, start, end, status=None):
        game_id = self.games.create_game([GamePlayer('x', 'A')], 'small', field_id, start, end)
        if status:
            self.games.update_status(game_id, status)
        return game_id

    def test_first_feasible_slot(self):
        """Earliest start is 12:19 (2 min travel + 10 min buffer), so 13:00 wins."""
        self._add_field('near', 40.01, -75.0)

        result = self.scheduler.find_slot(self.players, 'small', 60, NOW)

        self.assertEqual(result.field.field_id, 'near')
        self.assertEqual(result.start_time, datetime(2026, 5, 4, 13, 0))
        self.assertEqual(result.end_time, datetime(2026, 5, 4, 14, 0))
        self.assertEqual(result.slot.day_index, 0)
        self.assertEqual(result.slot.slot_index, 13)
        self.assertIsNotNone(result.slot.slot_id)

    def test_end_time_uses_duration(self):
        self._add_field('near', 40.01, -75.0)
        result = self.scheduler.find_slot(self.players, 'small', 90, NOW)
        self.assertEqual(result.end_time - result.start_time, timedelta(minutes=90))

    def test_earliest_start_uses_slowest_player(self):
        field = self._add_field('near', 40.0, -75.0)
        players = self.players + [make_player('far', 40.3, -75.0)]

        earliest = self.scheduler.earliest_start(players, field, NOW)

        # 33.4 km at 50 km/h rounds up to 41 minutes
        self.assertEqual(earliest, NOW + timedelta(minutes=41 + 10))

    def test_players_without_location_ignored(self):
        self._add_field('near', 40.01, -75.0)
        players = self.players + [make_player('nowhere', None, None)]
        result = self.scheduler.find_slot(players, 'small', 60, NOW)
        self.assertEqual(result.start_time, datetime(2026, 5, 4, 13, 0))

    def test_no_coordinates_at_all(self):
        self._add_field('near', 40.01, -75.0)
        with self.assertRaises(NoSlotFound):
            self.scheduler.find_slot([make_player('a', None, None)], 'small', 60, NOW)

    def test_unavailable_slots_skipped(self):
        """Slots flagged unavailable are never offered."""
        self._add_field('near', 40.01, -75.0, is_available=lambda start: start.hour != 13)
        result = self.scheduler.find_slot(self.players, 'small', 60, NOW)
        self.assertEqual(result.start_time, datetime(2026, 5, 4, 14, 0))

    def test_horizon_limits_search(self):
        """Nothing beyond now + 4 hours is offered."""
        self._add_field('near', 40.01, -75.0, is_available=lambda start: start.hour >= 17)
        with self.assertRaises(NoSlotFound):
            self.scheduler.find_slot(self.players, 'small', 60, NOW)

    def test_overlap_and_gap_rejection(self):
        """A booked game at 14:30-15:30 blocks every slot inside the horizon."""
        self._add_field('near', 40.01, -75.0)
        self._book('near', datetime(2026, 5, 4, 14, 30), datetime(2026, 5, 4, 15, 30))

        with self.assertRaises(NoSlotFound):
            self.scheduler.find_slot(self.players, 'small', 60, NOW)

    def test_gap_of_exactly_one_hour_allowed(self):
        self._add_field('near', 40.01, -75.0)
        self._book('near', datetime(2026, 5, 4, 11, 0), datetime(2026, 5, 4, 12, 0))
        self._book('near', datetime(2026, 5, 4, 15, 0), datetime(2026, 5, 4, 16, 0))

        result = self.scheduler.find_slot(self.players, 'small', 60, NOW)

        self.assertEqual(result.start_time, datetime(2026, 5, 4, 13, 0))

    def test_gap_too_short_before(self):
        self._add_field('near', 40.01, -75.0)
        self._book('near', datetime(2026, 5, 4, 11, 30), datetime(2026, 5, 4, 12, 30))

        result = self.scheduler.find_slot(self.players, 'small', 60, NOW)

        self.assertEqual(result.start_time, datetime(2026, 5, 4, 14, 0))
        booked = self.games.booked_games('near', result.start_time - timedelta(hours=1),
                                         result.end_time + timedelta(hours=1))
        for start, end in booked:
            self.assertFalse(start < result.end_time and end > result.start_time)
            gap = result.start_time - end if end <= result.start_time else start - result.end_time
            self.assertGreaterEqual(gap, timedelta(minutes=60))

    def test_ended_games_do_not_block(self):
        self._add_field('near', 40.01, -75.0)
        self._book('near', datetime(2026, 5, 4, 13, 0), datetime(2026, 5, 4, 14, 0), status=STATUS_ENDED)

        result = self.scheduler.find_slot(self.players, 'small', 60, NOW)

        self.assertEqual(result.start_time, datetime(2026, 5, 4, 13, 0))

    def test_falls_through_to_next_field(self):
        """A blocked nearest field hands over to the next one in distance order."""
        self._add_field('nearest', 40.005, -75.0, is_available=lambda start: False)
        self._add_field('second', 40.02, -75.0)

        result = self.scheduler.find_slot(self.players, 'small', 60, NOW)

        self.assertEqual(result.field.field_id, 'second')

    def test_mode_filter(self):
        """Fields of the other size are never searched."""
        self._add_field('large-only', 40.01, -75.0, size='large')
        with self.assertRaises(NoSlotFound):
            self.scheduler.find_slot(self.players, 'small', 60, NOW)

    def test_radius_expands_to_forty_km(self):
        """Zero fields at 10 and 20 km, one at ~33 km: search stops at 40 km."""
        self._add_field('distant', 40.3, -75.0)
        fields, radius = self.scheduler.search_fields((40.0, -75.0), 'small')
        self.assertEqual([f.field_id for f in fields], ['distant'])
        self.assertEqual(radius, 40)

    def test_radius_search_stops_at_first_hit(self):
        index = MagicMock()
        field = Field(field_id='f', name='F', latitude=40.3, longitude=-75.0)
        index.find_nearby.side_effect = lambda point, radius, mode: [field] if radius >= 40 else []
        scheduler = FieldScheduler(index, self.games, self.db.config['scheduling'])

        fields, radius = scheduler.search_fields((40.0, -75.0), 'small')

        self.assertEqual(fields, [field])
        self.assertEqual([c.args[1] for c in index.find_nearby.call_args_list], [10, 20, 40])

    def test_radius_search_ceiling(self):
        index = MagicMock()
        index.find_nearby.return_value = []
        scheduler = FieldScheduler(index, self.games, self.db.config['scheduling'])

        with self.assertRaises(NoSlotFound):
            scheduler.find_slot(self.players, 'small', 60, NOW)

        self.assertEqual([c.args[1] for c in index.find_nearby.call_args_list], [10, 20, 40, 80])

    def test_confirm_detects_new_booking(self):
        self._add_field('near', 40.01, -75.0)
        result = self.scheduler.find_slot(self.players, 'small', 60, NOW)
        self.assertTrue(self.scheduler.confirm(result))

        self._book('near', result.start_time, result.end_time)
        self.assertFalse(self.scheduler.confirm(result))

    def test_confirm_detects_consumed_slot(self):
        self._add_field('near', 40.01, -75.0)
        result = self.scheduler.find_slot(self.players, 'small', 60, NOW)
        self.fields.mark_slot_consumed(result.slot)
        self.assertFalse(self.scheduler.confirm(result))


if __name__ == '__main__':
    unittest.main()

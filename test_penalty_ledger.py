#!/usr/bin/env python3
"""
Tests for leaver penalties: late-leave window, suspension and daily decay.
"""

import os
import shutil
import tempfile
import unittest
from datetime import datetime, timedelta
from unittest.mock import patch

import yaml

from database.database_manager import DatabaseManager
from database.penalty_store import PenaltyStore
from matchmaking.penalty_ledger import PenaltyLedger
from models.penalty import PenaltyApplied, NoPenalty

T0 = datetime(2026, 5, 4, 18, 0)


class TestPenaltyLedger(unittest.TestCase):
    """Test cases for PenaltyLedger."""

    def setUp(self):
        """Set up test fixtures."""
        self.test_dir = tempfile.mkdtemp()
        self.test_db_path = os.path.join(self.test_dir, "test_penalty.db")
        self.test_config_path = os.path.join(self.test_dir, "test_config.yaml")

        self.test_config = {
            'penalties': {
                'leave_window_minutes': 20,
                'suspension_threshold': 3,
                'suspension_hours': 24,
                'decay_period_hours': 24
            }
        }
        with open(self.test_config_path, 'w') as f:
            yaml.dump(self.test_config, f)

        self.db = DatabaseManager(self.test_db_path, self.test_config_path)
        self.store = PenaltyStore(self.db)
        self.ledger = PenaltyLedger(self.store, self.db.config['penalties'])

    def tearDown(self):
        """Clean up test fixtures."""
        shutil.rmtree(self.test_dir)

    def test_leave_inside_window_penalized(self):
        result = self.ledger.record_leave('p1', T0, T0 - timedelta(minutes=15))

        self.assertIsInstance(result, PenaltyApplied)
        self.assertEqual(result.tally, 1)
        self.assertIsNone(result.suspension_end)
        record = self.store.get_record('p1')
        self.assertEqual(record.last_penalty_at, T0 - timedelta(minutes=15))

    def test_leave_at_window_boundary_penalized(self):
        result = self.ledger.record_leave('p1', T0, T0 - timedelta(minutes=20))
        self.assertIsInstance(result, PenaltyApplied)

    def test_leave_after_start_penalized(self):
        result = self.ledger.record_leave('p1', T0, T0 + timedelta(minutes=5))
        self.assertIsInstance(result, PenaltyApplied)

    def test_early_leave_not_penalized(self):
        """Two hours ahead is well outside the window."""
        result = self.ledger.record_leave('p1', T0, T0 - timedelta(hours=2))

        self.assertIsInstance(result, NoPenalty)
        self.assertIsNone(self.store.get_record('p1'))

    def test_twenty_five_minutes_depends_on_window(self):
        """25 minutes ahead falls outside the default 20 minute window."""
        result = self.ledger.record_leave('p1', T0, T0 - timedelta(minutes=25))
        self.assertIsInstance(result, NoPenalty)

        wide = PenaltyLedger(self.store, {'leave_window_minutes': 30})
        result = wide.record_leave('p1', T0, T0 - timedelta(minutes=25))
        self.assertIsInstance(result, PenaltyApplied)

    def test_third_leave_suspends_for_a_day(self):
        for _ in range(2):
            self.ledger.record_leave('p1', T0, T0)
        result = self.ledger.record_leave('p1', T0, T0)

        self.assertEqual(result.tally, 3)
        self.assertEqual(result.suspension_end, T0 + timedelta(hours=24))

        status = self.ledger.get_status('p1', T0 + timedelta(hours=1))
        self.assertTrue(status.is_suspended)
        self.assertEqual(status.suspension_end, T0 + timedelta(hours=24))
        self.assertEqual(status.tally, 3)

    def test_suspension_expires(self):
        """Queried 25 hours later the player is free again, one day decayed."""
        for _ in range(3):
            self.ledger.record_leave('p1', T0, T0)

        status = self.ledger.get_status('p1', T0 + timedelta(hours=25))

        self.assertFalse(status.is_suspended)
        self.assertIsNone(status.suspension_end)
        self.assertEqual(status.tally, 2)
        self.assertIsNone(self.store.get_record('p1').suspension_end)

    def test_suspension_ends_exactly_at_end_time(self):
        for _ in range(3):
            self.ledger.record_leave('p1', T0, T0)
        self.assertTrue(self.ledger.get_status('p1', T0 + timedelta(hours=24) - timedelta(seconds=1)).is_suspended)
        self.assertFalse(self.ledger.get_status('p1', T0 + timedelta(hours=24)).is_suspended)

    def test_decay_never_negative(self):
        self.ledger.record_leave('p1', T0, T0)
        self.ledger.record_leave('p1', T0, T0)

        status = self.ledger.get_status('p1', T0 + timedelta(days=5))

        self.assertEqual(status.tally, 0)
        self.assertEqual(self.store.get_record('p1').leave_count, 0)

    def test_decay_restarts_from_check(self):
        for _ in range(2):
            self.ledger.record_leave('p1', T0, T0)

        check = T0 + timedelta(days=1, hours=6)
        self.assertEqual(self.ledger.get_status('p1', check).tally, 1)
        self.assertEqual(self.store.get_record('p1').last_penalty_at, check)

        # less than a full day since the last check: nothing decays, the clock restarts
        second = check + timedelta(hours=23)
        self.assertEqual(self.ledger.get_status('p1', second).tally, 1)
        self.assertEqual(self.store.get_record('p1').last_penalty_at, second)
        self.assertEqual(self.ledger.get_status('p1', second + timedelta(days=1)).tally, 0)

    def test_partial_day_does_not_decay(self):
        self.ledger.record_leave('p1', T0, T0)

        status = self.ledger.get_status('p1', T0 + timedelta(hours=12))

        self.assertEqual(status.tally, 1)
        self.assertEqual(self.store.get_record('p1').last_penalty_at, T0 + timedelta(hours=12))

    def test_every_check_restarts_decay(self):
        """Checks at +12h and +30h are each less than a day apart, so nothing decays."""
        self.ledger.record_leave('p1', T0, T0)
        self.ledger.record_leave('p1', T0, T0)

        self.assertEqual(self.ledger.get_status('p1', T0 + timedelta(hours=12)).tally, 2)
        status = self.ledger.get_status('p1', T0 + timedelta(hours=30))

        self.assertEqual(status.tally, 2)
        self.assertEqual(self.store.get_record('p1').last_penalty_at, T0 + timedelta(hours=30))

    def test_check_at_same_instant_does_not_rewrite(self):
        self.ledger.record_leave('p1', T0, T0)
        with patch.object(self.store, 'save_record') as save:
            self.assertEqual(self.ledger.get_status('p1', T0).tally, 1)
        save.assert_not_called()

    def test_unknown_player_is_clean(self):
        status = self.ledger.get_status('nobody', T0)
        self.assertFalse(status.is_suspended)
        self.assertEqual(status.tally, 0)
        self.assertIsNone(self.store.get_record('nobody'))


if __name__ == '__main__':
    unittest.main()

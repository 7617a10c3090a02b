"""
Report generator for the pickup matchmaking system.
"""

import os
import pandas as pd
import logging
from datetime import datetime
from typing import Dict, Optional
from database.database_manager import DatabaseManager
from database.field_manager import FieldManager
from database.game_manager import GameManager
from database.penalty_store import PenaltyStore
from database.player_manager import PlayerManager

logger = logging.getLogger(__name__)

GAME_REPORT_COLUMNS = [
    'Game', 'Mode', 'Status', 'Field', 'Start', 'End', 'Team', 'Player ID', 'Player', 'Rating', 'Filler'
]
PENALTY_REPORT_COLUMNS = ['Player ID', 'Player', 'Leaves', 'Last Penalty', 'Suspended Until', 'Suspended']


class ReportGenerator:
    """Generates CSV reports of scheduled games and leaver penalties."""

    def __init__(self, database_manager: DatabaseManager):
        self.db_manager = database_manager
        self.player_manager = PlayerManager(database_manager)
        self.field_manager = FieldManager(database_manager)
        self.game_manager = GameManager(database_manager)
        self.penalty_store = PenaltyStore(database_manager)

    def generate_game_report(self, output_file: str, mode: Optional[str] = None) -> int:
        """
        Write one row per player seat of every game.
        Returns the number of games in the report.
        """
        games = self.game_manager.get_games(mode=mode)
        if not games:
            logger.warning("No games found for report generation")

        players = {p.player_id: p for p in self.player_manager.get_all_players()}
        fields = {f.field_id: f.name for f in self.field_manager.get_all_fields()}

        data = []
        for game in games:
            for seat in game.players:
                player = players.get(seat.player_id)
                data.append({
                    'Game': game.game_id,
                    'Mode': game.mode,
                    'Status': game.status,
                    'Field': fields.get(game.field_id, game.field_id),
                    'Start': game.start_time.strftime('%Y-%m-%d %H:%M'),
                    'End': game.end_time.strftime('%Y-%m-%d %H:%M'),
                    'Team': seat.team,
                    'Player ID': seat.player_id,
                    'Player': player.name if player else '',
                    'Rating': player.rating_for(game.mode) if player else '',
                    'Filler': 'yes' if player and player.is_filler else ''
                })

        df = pd.DataFrame(data, columns=GAME_REPORT_COLUMNS)
        df.to_csv(output_file, index=False, encoding='utf-8')

        logger.info(f"Generated game report with {len(games)} games: {output_file}")
        return len(games)

    def generate_penalty_report(self, output_file: str, now: datetime) -> int:
        """
        Write the stored penalty records, most leaves first. Suspension is
        evaluated against ``now``; decay is not applied.
        Returns the number of records in the report.
        """
        records = self.penalty_store.get_all_records()
        players = {p.player_id: p for p in self.player_manager.get_all_players()}

        data = []
        for record in sorted(records, key=lambda r: (-r.leave_count, r.player_id)):
            player = players.get(record.player_id)
            suspended = record.suspension_end is not None and now < record.suspension_end
            data.append({
                'Player ID': record.player_id,
                'Player': player.name if player else '',
                'Leaves': record.leave_count,
                'Last Penalty': record.last_penalty_at.strftime('%Y-%m-%d %H:%M') if record.last_penalty_at else '',
                'Suspended Until': record.suspension_end.strftime('%Y-%m-%d %H:%M') if record.suspension_end else '',
                'Suspended': 'yes' if suspended else 'no'
            })

        df = pd.DataFrame(data, columns=PENALTY_REPORT_COLUMNS)
        df.to_csv(output_file, index=False, encoding='utf-8')

        logger.info(f"Generated penalty report with {len(records)} records: {output_file}")
        return len(records)

    def generate_all_reports(self, output_dir: str, now: datetime) -> Dict[str, int]:
        """Generate every report into a directory."""
        os.makedirs(output_dir, exist_ok=True)
        return {
            'games': self.generate_game_report(os.path.join(output_dir, 'games.csv')),
            'penalties': self.generate_penalty_report(os.path.join(output_dir, 'penalties.csv'), now)
        }

"""
Command-line entry point for the pickup matchmaking system.

Usage:
    python pickup_main.py [--db PATH] [--config PATH] COMMAND [ARGS...]

Commands:
    init                      create the database and show statistics
    import-players CSV        load players from a CSV file
    import-fields CSV         load fields from a CSV file with a 7-day calendar
    fetch-fields LAT LON [M]  store fields found by the field API within M metres
    fillers N                 create N filler players
    join PLAYER MODE          join a queue and try to form a match
    leave PLAYER MODE         leave a queue
    penalty PLAYER            show a player's penalty status
    report DIR                write game and penalty reports
"""

import logging
import sys
from datetime import datetime
from typing import List

from database.database_manager import DatabaseManager
from database.field_manager import FieldManager
from database.player_manager import PlayerManager
from matchmaking.errors import PickupError
from matchmaking.queue_manager import QueueManager
from models.game import MatchResult
from reports.report_generator import ReportGenerator

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def _print_match(result: MatchResult) -> None:
    print(f"Game {result.game_id} ({result.mode}) at {result.field_name}, "
          f"{result.start_time:%Y-%m-%d %H:%M} - {result.end_time:%H:%M}")
    for label, team in (('Team A', result.team_a), ('Team B', result.team_b)):
        print(f"  {label}:")
        for player in team:
            print(f"    {player.name} ({player.rating:.0f})")


def run(args: List[str], db_path: str = "pickup.db", config_file: str = "config.yaml") -> int:
    """Execute one command. Returns the process exit code."""
    if not args:
        print(__doc__)
        return 1

    command, params = args[0], args[1:]
    now = datetime.now()
    db_manager = DatabaseManager(db_path, config_file)

    if command == 'init':
        logger.info(f"Database statistics: {db_manager.get_database_stats()}")
    elif command == 'import-players' and len(params) == 1:
        count = PlayerManager(db_manager).load_players_from_csv(params[0])
        print(f"Imported {count} players")
    elif command == 'import-fields' and len(params) == 1:
        count = FieldManager(db_manager).load_fields_from_csv(params[0], now)
        print(f"Imported {count} fields")
    elif command == 'fetch-fields' and len(params) in (2, 3):
        radius_m = int(params[2]) if len(params) == 3 else 10000
        count = FieldManager(db_manager).import_fields_from_api(
            float(params[0]), float(params[1]), now, radius_m=radius_m
        )
        print(f"Imported {count} fields")
    elif command == 'fillers' and len(params) == 1:
        count = PlayerManager(db_manager).create_filler_players(int(params[0]))
        print(f"Created {count} filler players")
    elif command == 'join' and len(params) == 2:
        result = QueueManager(db_manager).join_queue(params[0], params[1], now)
        if isinstance(result, MatchResult):
            _print_match(result)
        else:
            print(f"{type(result).__name__}: {params[0]} waiting in {params[1]} queue")
    elif command == 'leave' and len(params) == 2:
        result = QueueManager(db_manager).leave_queue(params[0], params[1])
        print(type(result).__name__)
    elif command == 'penalty' and len(params) == 1:
        status = QueueManager(db_manager).penalty_status(params[0], now)
        print(f"Leaves: {status.tally}, suspended: {status.is_suspended}"
              + (f" until {status.suspension_end:%Y-%m-%d %H:%M}" if status.suspension_end else ""))
    elif command == 'report' and len(params) == 1:
        results = ReportGenerator(db_manager).generate_all_reports(params[0], now)
        logger.info(f"Generated reports: {results}")
    else:
        print(__doc__)
        return 1
    return 0


def main(argv: List[str] = None) -> int:
    """Main application entry point."""
    args = list(sys.argv[1:] if argv is None else argv)
    db_path = "pickup.db"
    config_file = "config.yaml"

    while args and args[0] in ('--db', '--config') and len(args) > 1:
        if args[0] == '--db':
            db_path = args[1]
        else:
            config_file = args[1]
        args = args[2:]

    try:
        return run(args, db_path, config_file)
    except PickupError as e:
        logger.warning(f"{type(e).__name__}: {e}")
        return 2


if __name__ == "__main__":
    sys.exit(main())

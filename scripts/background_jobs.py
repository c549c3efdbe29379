#!/usr/bin/env python3
"""
Maintenance jobs for the Music Jeopardy database.
Schedule them with cron or run them by hand after manual data fixes.

Usage:
    python scripts/background_jobs.py reconcile-counts
    python scripts/background_jobs.py validate-integrity
    python scripts/background_jobs.py system-stats
"""

import sys
import logging
from datetime import datetime
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from sqlalchemy import func
from jeopardy.core.database import SessionLocal
from jeopardy.core.game_config import GameStatus
from jeopardy.models.game import Game
from jeopardy.models.game_player import GamePlayer
from jeopardy.models.game_result import GameResult
from jeopardy.models.team import Team
from jeopardy.services.consistency_manager import ConsistencyManager

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler('background_jobs.log'),
        logging.StreamHandler()
    ]
)
logger = logging.getLogger(__name__)

MAX_LOGGED_ISSUES = 5


def reconcile_player_counts(db) -> bool:
    """Repair games whose player_count drifted from their player rows."""
    stats = ConsistencyManager(db).reconcile_player_counts(batch_size=1000)

    logger.info(
        f"{stats['updated_games']} of {stats['total_games']} games corrected "
        f"in {stats['batches_processed']} batches ({stats['duration']})"
    )
    if stats['errors']:
        logger.error(f"{stats['errors']} games could not be reconciled")
    return stats['errors'] == 0


def validate_data_integrity(db) -> bool:
    """Report lobby, team and results rows that break the game rules."""
    report = ConsistencyManager(db).validate_data_integrity()

    for check, issues in report['issues'].items():
        if not issues:
            logger.info(f"{check}: ok")
            continue
        logger.warning(f"{check}: {len(issues)} issues")
        for issue in issues[:MAX_LOGGED_ISSUES]:
            logger.warning(f"    {issue}")
        if len(issues) > MAX_LOGGED_ISSUES:
            logger.warning(f"    ... {len(issues) - MAX_LOGGED_ISSUES} more")

    logger.info(f"{report['total_issues']} issues in total")
    return report['total_issues'] == 0


def show_system_stats(db) -> bool:
    by_status = dict(db.query(Game.status, func.count(Game.id)).group_by(Game.status).all())

    logger.info(f"Games: {sum(by_status.values())}")
    for status in GameStatus:
        logger.info(f"  {status.value}: {by_status.get(status.value, 0)}")
    logger.info(f"Players: {db.query(func.count(GamePlayer.id)).scalar()}")
    logger.info(f"Teams: {db.query(func.count(Team.id)).scalar()}")
    logger.info(f"Results: {db.query(func.count(GameResult.id)).scalar()}")
    return True


COMMANDS = {
    "reconcile-counts": reconcile_player_counts,
    "validate-integrity": validate_data_integrity,
    "system-stats": show_system_stats,
}


def run(command: str) -> bool:
    job = COMMANDS[command]
    logger.info(f"=== {command} ===")
    with SessionLocal() as db:
        try:
            return job(db)
        except Exception as e:
            logger.error(f"{command} failed: {e}", exc_info=True)
            return False


def main():
    if len(sys.argv) != 2 or sys.argv[1] not in COMMANDS:
        if len(sys.argv) == 2:
            logger.error(f"Unknown command: {sys.argv[1]}")
        print(__doc__)
        sys.exit(1)

    command = sys.argv[1]
    start_time = datetime.now()
    success = run(command)
    logger.info(f"{command} finished in {datetime.now() - start_time}: {'ok' if success else 'FAILED'}")
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()

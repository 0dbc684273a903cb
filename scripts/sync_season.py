"""
One-off data sync from the command line, e.g. to seed a fresh database:

    python scripts/sync_season.py init
    python scripts/sync_season.py results
    python scripts/sync_season.py sprints
"""
import argparse
import os
import sys

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from paddock.core.logging import configure_logging
from paddock.services.datasync import DataSync

COMMANDS = {
    "init": "initialize_data",
    "races": "sync_current_season_data",
    "force-races": "force_sync_current_season_data",
    "drivers": "sync_driver_data",
    "sprints": "sync_weekend_schedules_and_sprint_data",
    "photos": "update_driver_profile_pictures",
    "results": "check_for_completed_races",
}

if __name__ == "__main__":
    ap = argparse.ArgumentParser()
    ap.add_argument("command", choices=sorted(COMMANDS), help="Which sync job to run")
    ap.add_argument("--log-level", default=None, help="Override LOG_LEVEL, e.g. DEBUG")
    args = ap.parse_args()

    configure_logging(args.log_level)
    result = getattr(DataSync(), COMMANDS[args.command])()
    if result is not None:
        print(result)
    print("Done.")

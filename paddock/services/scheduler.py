"""
Background jobs that keep race data fresh. All times are UTC.
"""
import logging
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from paddock.services.datasync import DataSync

logger = logging.getLogger(__name__)

# (job id, DataSync method, cron fields)
JOBS = [
    ("sync_current_season_data", "sync_current_season_data", {"day_of_week": "sun", "hour": 0, "minute": 0}),
    ("sync_driver_data", "sync_driver_data", {"day_of_week": "sun", "hour": 1, "minute": 0}),
    ("check_for_new_season", "check_for_new_season", {"hour": 6, "minute": 0}),
    ("update_driver_profile_pictures", "update_driver_profile_pictures", {"day_of_week": "sun", "hour": 2, "minute": 0}),
    ("sync_weekend_schedules", "sync_weekend_schedules_and_sprint_data", {"day_of_week": "sun", "hour": 3, "minute": 0}),
    # Most races finish on a Sunday
    ("check_for_completed_races", "check_for_completed_races", {"day_of_week": "sun", "minute": 0}),
    ("clear_expired_cache", "clear_expired_cache", {"minute": 30}),
]

scheduler: Optional[BackgroundScheduler] = None


def build_scheduler(sync: DataSync) -> BackgroundScheduler:
    sched = BackgroundScheduler(timezone="UTC")
    for job_id, method, cron in JOBS:
        sched.add_job(
            getattr(sync, method),
            CronTrigger(timezone="UTC", **cron),
            id=job_id,
            name=job_id.replace("_", " "),
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )
    return sched

def start_scheduler(sync: DataSync) -> BackgroundScheduler:
    """Start the background scheduler"""
    global scheduler
    if scheduler is not None and scheduler.running:
        logger.info("[Scheduler] Scheduler already running")
        return scheduler

    scheduler = build_scheduler(sync)
    scheduler.start()
    logger.info("[Scheduler] Background scheduler started with %d jobs", len(JOBS))
    return scheduler

def stop_scheduler() -> None:
    """Stop the background scheduler"""
    global scheduler
    if scheduler is not None and scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("[Scheduler] Background scheduler stopped")
    scheduler = None

# paddock/services/datasync.py
"""
Keeps the local calendar, entry list and results in step with the data
providers. Every job opens its own DB session so it can run from the
scheduler thread, an admin request or a script.
"""
from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List, Optional

from sqlalchemy.orm import Session

from paddock.core.config import settings
from paddock.core.exceptions import InvalidStateError
from paddock.db.session import SessionLocal
from paddock.models.f1 import Constructor, Driver, Race
from paddock.services import jolpica, openf1
from paddock.services import predictions as prediction_service
from paddock.services import races as race_service
from paddock.services import sprint_predictions as sprint_prediction_service
from paddock.services import stats as stats_service
from paddock.utils.season import current_season

logger = logging.getLogger(__name__)


class DataSync:
    def __init__(self, jolpica_client: Optional[jolpica.JolpicaClient] = None,
                 openf1_client: Optional[openf1.OpenF1Client] = None,
                 session_factory: Callable[[], Session] = SessionLocal,
                 sleep: Callable[[float], None] = time.sleep,
                 race_delay_seconds: float = None):
        self.jolpica = jolpica_client or jolpica.JolpicaClient()
        self.openf1 = openf1_client or openf1.OpenF1Client()
        self.session_factory = session_factory
        self._sleep = sleep
        self.race_delay_seconds = (
            settings.race_sync_delay_seconds if race_delay_seconds is None else race_delay_seconds
        )

    @contextmanager
    def _session(self) -> Iterator[Session]:
        db = self.session_factory()
        try:
            yield db
        finally:
            db.close()

    def _has_season(self, db: Session, season: int) -> bool:
        return db.query(Race).filter_by(season=season).first() is not None

    # -----------------------
    # Jobs
    # -----------------------
    def sync_current_season_data(self) -> None:
        season = current_season()
        with self._session() as db:
            if self._has_season(db, season):
                logger.info("Races for season %s already exist, skipping race sync", season)
                return
            logger.info("Syncing current season race data")
            jolpica.fetch_current_season_races(db, self.jolpica, season)

    def force_sync_current_season_data(self) -> int:
        """Re-import the calendar over the stored races; returns the number of races."""
        season = current_season()
        logger.info("Force syncing race data for season %s", season)
        with self._session() as db:
            return jolpica.fetch_current_season_races(db, self.jolpica, season, force=True)

    def force_sync_weekend_schedules(self) -> int:
        season = current_season()
        with self._session() as db:
            if not self._has_season(db, season):
                raise InvalidStateError(f"No races found for season {season}. Please sync race data first.")
            return jolpica.fetch_weekend_schedules(db, self.jolpica, season)

    def sync_driver_data(self) -> None:
        season = current_season()
        logger.info("Weekly driver sync for season %s", season)
        with self._session() as db:
            jolpica.fetch_drivers_for_season(db, self.jolpica, season, force_refresh=True)

    def check_for_new_season(self) -> None:
        logger.info("Checking for new season data")
        season = current_season()
        with self._session() as db:
            exists = self._has_season(db, season)
        if exists:
            logger.info("Races already exist for season %s, skipping season sync", season)
            return
        logger.info("No races found for season %s, syncing new season data", season)
        self.sync_current_season_data()

    def update_driver_profile_pictures(self) -> Dict[str, int]:
        logger.info("Starting scheduled update of driver profile pictures")
        with self._session() as db:
            return openf1.update_driver_profile_pictures(db, self.openf1)

    def sync_weekend_schedules_and_sprint_data(self) -> None:
        logger.info("Starting scheduled sync of weekend schedules and sprint data")
        season = current_season()
        with self._session() as db:
            try:
                # Schedules set the sprint weekend flags the sprint import relies on
                jolpica.fetch_weekend_schedules(db, self.jolpica, season)
                jolpica.fetch_sprint_races(db, self.jolpica, season)
                logger.info("Successfully synced weekend schedules and sprint data for season %s", season)
            except Exception:
                db.rollback()
                logger.exception("Failed to sync weekend schedules and sprint data for season %s", season)

    def check_for_completed_races(self) -> List[str]:
        """Pull results for races of the last week and score their predictions.

        Returns the names of the races (and sprints) that got scored.
        """
        logger.info("Checking for completed races to update results")
        processed: List[str] = []
        with self._session() as db:
            recent = race_service.get_recent_unscored_races(db)
            if not recent:
                logger.info("No recent races need to be updated")
            for index, race in enumerate(recent):
                if index > 0 and self.race_delay_seconds > 0:
                    self._sleep(self.race_delay_seconds)
                try:
                    logger.info("Updating results for race: %s", race.race_name)
                    if not jolpica.update_race_results(db, self.jolpica, race.id):
                        continue
                    prediction_service.calculate_scores(db, race.id)
                    logger.info("Calculated prediction scores for race: %s", race.race_name)
                    processed.append(race.race_name)
                except Exception:
                    db.rollback()
                    logger.exception("Failed to process race: %s", race.race_name)

            for sprint_race in race_service.get_recent_unscored_sprints(db):
                try:
                    if not jolpica.update_sprint_results(db, self.jolpica, sprint_race.id):
                        continue
                    sprint_prediction_service.calculate_sprint_scores(db, sprint_race.id)
                    processed.append(sprint_race.race_name)
                except Exception:
                    db.rollback()
                    logger.exception("Failed to process sprint race: %s", sprint_race.race_name)

            if processed:
                stats_service.clear_cache(db)
        logger.info("Processed %d races", len(processed))
        return processed

    def clear_expired_cache(self) -> None:
        self.jolpica.clear_expired()

    def initialize_data(self) -> None:
        logger.info("Initializing F1 data if needed")
        season = current_season()
        with self._session() as db:
            had_races = self._has_season(db, season)
        if not had_races:
            logger.info("No races found for season %s, syncing race data", season)
            self.sync_current_season_data()
        else:
            logger.info("Races for season %s already exist, skipping race sync", season)

        with self._session() as db:
            has_drivers = db.query(Driver).first() is not None
            has_constructors = db.query(Constructor).first() is not None
            if not had_races or not has_drivers or not has_constructors:
                logger.info("Syncing drivers and constructors for season %s", season)
                jolpica.fetch_drivers_for_season(db, self.jolpica, season, force_refresh=True)
            else:
                logger.info("Drivers and constructors already exist for current season, skipping driver sync")

        if has_drivers and settings.update_profile_pictures_on_startup:
            logger.info("Updating driver profile pictures from OpenF1 API during startup")
            try:
                self.update_driver_profile_pictures()
            except Exception:
                logger.exception("Failed to update driver profile pictures during initialization")
        elif has_drivers:
            logger.info("Skipping profile picture updates during startup "
                        "(set UPDATE_PROFILE_PICTURES_ON_STARTUP=true to enable)")

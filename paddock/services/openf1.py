# paddock/services/openf1.py
"""
OpenF1 lookups: driver headshots and who actually raced on a given day.
"""
from __future__ import annotations

import logging
import time
from datetime import date
from typing import Any, Callable, Dict, List, Optional

import requests
from sqlalchemy import func
from sqlalchemy.orm import Session

from paddock.core.config import settings
from paddock.models.f1 import Constructor, Driver

logger = logging.getLogger(__name__)


class OpenF1Client:
    def __init__(self, base_url: str = None, session: Optional[requests.Session] = None,
                 sleep: Callable[[float], None] = time.sleep):
        self.base_url = (base_url or settings.openf1_url).rstrip("/")
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", "Paddock/1.0")
        self._sleep = sleep

    def get_list(self, path: str, **params) -> List[Dict[str, Any]]:
        """GET a list endpoint; raises on transport or HTTP errors."""
        url = f"{self.base_url}/{path.lstrip('/')}"
        logger.debug("Making API request to %s %s", url, params)
        resp = self.session.get(url, params=params or None, timeout=20)
        resp.raise_for_status()
        data = resp.json()
        return data if isinstance(data, list) else []

    def test_connection(self) -> bool:
        try:
            self.get_list("drivers", limit=1)
            return True
        except (requests.RequestException, ValueError):
            logger.exception("Failed to connect to OpenF1 API")
            return False

    def pause(self, ms: int) -> None:
        if ms > 0:
            self._sleep(ms / 1000)


def _headshot(rows: List[Dict[str, Any]]) -> Optional[str]:
    for row in rows[:1]:
        url = str(row.get("headshot_url") or "").strip()
        if url:
            return url
    return None

def fetch_driver_headshot_url(client: OpenF1Client, driver: Driver) -> Optional[str]:
    """Full name first, then last name with a first-name match, then permanent number.

    OpenF1 keys drivers by their current race number, which can differ
    from the permanent one, so the number is only a last resort.
    """
    found = _headshot(client.get_list("drivers", first_name=driver.given_name, last_name=driver.family_name))
    if found:
        return found

    client.pause(settings.openf1_delay_between_calls_ms)
    by_last = client.get_list("drivers", last_name=driver.family_name)
    matches = [r for r in by_last if str(r.get("first_name") or "").lower() == driver.given_name.lower()]
    found = _headshot(matches)
    if found:
        return found

    try:
        number = int(driver.permanent_number)
    except (TypeError, ValueError):
        number = None
    if number is not None:
        found = _headshot(client.get_list("drivers", driver_number=number))
        if found:
            return found

    logger.warning("No headshot URL found for driver: %s", driver.full_name)
    return None

def update_driver_profile_pictures(db: Session, client: OpenF1Client) -> Dict[str, int]:
    logger.info("Starting to update driver profile pictures from OpenF1 API")
    counts = {"updated": 0, "skipped": 0, "errors": 0}
    if not client.test_connection():
        logger.error("OpenF1 API connection test failed. Skipping profile picture updates.")
        return counts

    for index, driver in enumerate(db.query(Driver).order_by(Driver.id).all()):
        if index > 0:
            client.pause(settings.openf1_delay_between_drivers_ms)
        try:
            url = fetch_driver_headshot_url(client, driver)
        except (requests.RequestException, ValueError):
            counts["errors"] += 1
            logger.exception("Failed to update profile picture for driver: %s", driver.full_name)
            if counts["errors"] >= settings.openf1_max_errors_before_stop:
                logger.warning("Too many errors encountered, stopping profile picture updates")
                break
            continue

        if url is None:
            counts["skipped"] += 1
        elif url != driver.profile_picture_url:
            driver.profile_picture_url = url
            db.commit()
            counts["updated"] += 1
            logger.info("Updated profile picture for driver: %s", driver.full_name)

    logger.info(
        "Completed updating driver profile pictures. Updated %(updated)d, skipped %(skipped)d, errors %(errors)d",
        counts,
    )
    return counts

def _safe_headshot(client: OpenF1Client, driver: Driver) -> Optional[str]:
    try:
        return fetch_driver_headshot_url(client, driver)
    except (requests.RequestException, ValueError):
        logger.exception("Error fetching headshot URL for driver: %s", driver.full_name)
        return None

def _find_or_create(db: Session, client: OpenF1Client, row: Dict[str, Any]) -> Optional[Driver]:
    first = str(row.get("first_name") or "").strip()
    last = str(row.get("last_name") or "").strip()
    if not first or not last:
        return None

    driver = (
        db.query(Driver)
        .filter(func.lower(Driver.given_name) == first.lower(), func.lower(Driver.family_name) == last.lower())
        .first()
    )
    candidate_id = (first[:1] + last).lower()
    if driver is None:
        driver = db.get(Driver, candidate_id)

    if driver is None:
        # Reserve or rookie driver that was never in the season entry list
        code = row.get("name_acronym") or str(row.get("broadcast_name") or "")[:3]
        driver = Driver(
            id=candidate_id,
            code=str(code or ""),
            permanent_number=str(row["driver_number"]) if row.get("driver_number") is not None else None,
            given_name=first,
            family_name=last,
            date_of_birth="",
            nationality=str(row.get("country_code") or ""),
            url="",
        )
        team = str(row.get("team_name") or "").strip()
        if team:
            constructor = db.query(Constructor).filter(func.lower(Constructor.name) == team.lower()).first()
            if constructor is not None:
                driver.constructor = constructor
        driver.profile_picture_url = _safe_headshot(client, driver)
        db.add(driver)
        db.commit()
        logger.info("Created driver %s from OpenF1 session data", driver.id)
    elif not driver.profile_picture_url:
        url = _safe_headshot(client, driver)
        if url:
            driver.profile_picture_url = url
            db.commit()
    return driver

def fetch_active_drivers_for_date(db: Session, client: OpenF1Client, day: date) -> List[Driver]:
    """Drivers present on `day`; unknown drivers are created on the fly."""
    try:
        rows = client.get_list("drivers", date=day.isoformat())
    except (requests.RequestException, ValueError):
        logger.exception("Failed to fetch active drivers for %s", day)
        return []

    seen = set()
    participants = []
    for row in rows:
        driver = _find_or_create(db, client, row)
        if driver is not None and driver.id not in seen:
            seen.add(driver.id)
            participants.append(driver)
    return participants

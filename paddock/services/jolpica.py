# paddock/services/jolpica.py
"""
Race calendar, driver and result import from Jolpica (Ergast-compatible).

`JolpicaClient` does the HTTP: it spaces requests to stay under the
provider's rate limit, retries 429s with exponential backoff and keeps a
24h in-memory cache of responses. The functions below map the MRData
payloads onto our tables.
"""
from __future__ import annotations

import logging
import time as _time
from threading import Lock
from datetime import date, time
from typing import Any, Callable, Dict, List, Optional, Tuple

import requests
from sqlalchemy.orm import Session

from paddock.core.config import settings
from paddock.models.f1 import Constructor, Driver, Race, SprintRace
from paddock.utils.season import current_season

logger = logging.getLogger(__name__)

DEFAULT_RACE_TIME = time(12, 0)


class JolpicaClient:
    def __init__(self, base_url: str = None, requests_per_second: int = None,
                 max_retries: int = None, cache_hours: int = None,
                 session: Optional[requests.Session] = None,
                 sleep: Callable[[float], None] = _time.sleep,
                 clock: Callable[[], float] = _time.monotonic):
        self.base_url = (base_url or settings.jolpica_url).rstrip("/")
        rps = requests_per_second or settings.jolpica_requests_per_second
        self.request_delay = 1.0 / max(rps, 1)
        self.max_retries = settings.jolpica_max_retries if max_retries is None else max_retries
        self.cache_ttl = (cache_hours or settings.jolpica_cache_hours) * 3600
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", "Paddock/1.0")
        self._sleep = sleep
        self._clock = clock
        self._last_request: Optional[float] = None
        self._cache: Dict[str, Tuple[float, Dict[str, Any]]] = {}
        # Shared by the scheduler thread and request handlers
        self._lock = Lock()

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def clear_expired(self) -> int:
        with self._lock:
            now = self._clock()
            expired = [u for u, (ts, _) in self._cache.items() if now - ts > self.cache_ttl]
            for u in expired:
                del self._cache[u]
        logger.debug("Jolpica cache: dropped %d expired entries, %d left", len(expired), len(self._cache))
        return len(expired)

    def _throttle(self) -> None:
        if self._last_request is None:
            return
        elapsed = self._clock() - self._last_request
        if elapsed < self.request_delay:
            wait = self.request_delay - elapsed
            logger.debug("Rate limiting: sleeping %.3fs before next request", wait)
            self._sleep(wait)

    def get_json(self, path: str) -> Dict[str, Any]:
        with self._lock:
            return self._get_json(self.url(path))

    def _get_json(self, url: str) -> Dict[str, Any]:
        hit = self._cache.get(url)
        if hit and self._clock() - hit[0] <= self.cache_ttl:
            logger.debug("Using cached response for %s", url)
            return hit[1]

        self._throttle()
        retries = 0
        while True:
            self._last_request = self._clock()
            resp = self.session.get(url, timeout=20)
            if resp.status_code == 429 and retries < self.max_retries:
                retries += 1
                wait = 2 ** retries
                logger.warning("Rate limit exceeded. Retrying in %ss (retry %d/%d)", wait, retries, self.max_retries)
                self._sleep(wait)
                continue
            if resp.status_code == 429:
                logger.error("Max retries reached for API request to %s", url)
            resp.raise_for_status()
            data = resp.json()
            self._cache[url] = (self._clock(), data)
            return data


# -----------------------
# Payload helpers
# -----------------------
def _table(payload: Dict, table: str, key: str) -> List[Dict]:
    return ((payload or {}).get("MRData", {}).get(table, {}) or {}).get(key) or []

def _parse_time(value: Optional[str]) -> Optional[time]:
    if not value:
        return None
    return time.fromisoformat(value.replace("Z", ""))

def _session(block: Optional[Dict]) -> Tuple[Optional[date], Optional[time]]:
    if not block or not block.get("date"):
        return None, None
    return date.fromisoformat(block["date"]), _parse_time(block.get("time"))

def _driver_id(result: Dict) -> str:
    return str(result["Driver"]["driverId"])


# -----------------------
# Calendar
# -----------------------
def fetch_current_season_races(db: Session, client: JolpicaClient, season: Optional[int] = None,
                               force: bool = False) -> int:
    """Import the season calendar. Existing seasons only get their schedules refreshed.

    With `force` the calendar is re-imported over the stored races; results
    and predictions already attached to them are kept.
    """
    season = season or current_season()
    existing = db.query(Race).filter_by(season=season).count()
    if existing and not force:
        logger.info("Using %d existing races for season %s from database", existing, season)
        fetch_weekend_schedules(db, client, season)
        return 0

    logger.info("Fetching races for season %s", season)
    races = _table(client.get_json(f"{season}.json"), "RaceTable", "Races")
    for r in races:
        circuit = r.get("Circuit") or {}
        location = circuit.get("Location") or {}
        rnd = int(r["round"])
        race = db.get(Race, f"{season}-{rnd}")
        if race is None:
            race = Race(id=f"{season}-{rnd}", season=season, round=rnd)
            db.add(race)
        race.race_name = str(r.get("raceName", ""))
        race.circuit_id = str(circuit.get("circuitId", ""))
        race.circuit_name = str(circuit.get("circuitName", ""))
        race.country = str(location.get("country", ""))
        race.locality = str(location.get("locality", ""))
        race.date = date.fromisoformat(r["date"])
        race.time = _parse_time(r.get("time")) or DEFAULT_RACE_TIME
    db.commit()
    logger.info("Imported %d races for season %s", len(races), season)
    return len(races)

def _apply_weekend_schedule(race: Race, data: Dict) -> None:
    race.practice1_date, race.practice1_time = _session(data.get("FirstPractice"))
    race.practice2_date, race.practice2_time = _session(data.get("SecondPractice"))
    race.practice3_date, race.practice3_time = _session(data.get("ThirdPractice"))
    race.qualifying_date, race.qualifying_time = _session(data.get("Qualifying"))
    if data.get("Sprint"):
        race.is_sprint_weekend = True
        race.sprint_date, race.sprint_time = _session(data["Sprint"])
    if data.get("SprintQualifying"):
        race.sprint_qualifying_date, race.sprint_qualifying_time = _session(data["SprintQualifying"])

def fetch_weekend_schedules(db: Session, client: JolpicaClient, season: int) -> int:
    races = db.query(Race).filter_by(season=season).order_by(Race.round).all()
    if not races:
        logger.warning("No races found for season %s, cannot fetch weekend schedules", season)
        return 0

    updated = 0
    for race in races:
        try:
            found = _table(client.get_json(f"{race.season}/{race.round}.json"), "RaceTable", "Races")
            if not found:
                continue
            _apply_weekend_schedule(race, found[0])
            db.commit()
            updated += 1
        except (requests.RequestException, KeyError, ValueError):
            db.rollback()
            logger.exception("Failed to fetch weekend schedule for race %s", race.race_name)
    logger.info("Completed fetching weekend schedules for %d races", len(races))
    return updated


# -----------------------
# Drivers & constructors
# -----------------------
def fetch_drivers_for_season(db: Session, client: JolpicaClient, season: Optional[int] = None,
                             force_refresh: bool = False) -> None:
    season = season or current_season()
    if not force_refresh:
        has_links = db.query(Driver).filter(Driver.constructor_id.isnot(None)).first() is not None
        if has_links and db.query(Constructor).first() is not None:
            logger.info("Using existing drivers and constructors from database")
            return

    logger.info("Fetching drivers and constructors for season %s (force_refresh=%s)", season, force_refresh)
    fetch_drivers(db, client, season)
    fetch_constructors(db, client, season)
    assign_drivers_to_constructors(db, client, season)

def fetch_drivers(db: Session, client: JolpicaClient, season: int) -> int:
    drivers = _table(client.get_json(f"{season}/drivers.json"), "DriverTable", "Drivers")
    for d in drivers:
        existing = db.get(Driver, str(d["driverId"]))
        driver = existing or Driver(id=str(d["driverId"]))
        driver.code = d.get("code") or ""
        driver.permanent_number = d.get("permanentNumber")
        driver.given_name = str(d.get("givenName", ""))
        driver.family_name = str(d.get("familyName", ""))
        driver.date_of_birth = str(d.get("dateOfBirth", ""))
        driver.nationality = str(d.get("nationality", ""))
        driver.url = str(d.get("url", ""))
        if existing is None:
            db.add(driver)
    db.commit()
    logger.info("Imported %d drivers", len(drivers))
    return len(drivers)

def fetch_constructors(db: Session, client: JolpicaClient, season: int) -> int:
    constructors = _table(client.get_json(f"{season}/constructors.json"), "ConstructorTable", "Constructors")
    for c in constructors:
        db.merge(Constructor(
            id=str(c["constructorId"]),
            name=str(c.get("name", "")),
            nationality=str(c.get("nationality", "")),
            url=str(c.get("url", "")),
        ))
    db.commit()
    logger.info("Imported %d constructors", len(constructors))
    return len(constructors)

def _link(db: Session, driver_id: str, constructor_id: str) -> None:
    driver = db.get(Driver, driver_id)
    if driver is not None and db.get(Constructor, constructor_id) is not None:
        driver.constructor_id = constructor_id

def assign_drivers_to_constructors(db: Session, client: JolpicaClient, season: int) -> None:
    # Standings exist once the season has started
    standings = _table(client.get_json(f"{season}/driverStandings.json"), "StandingsTable", "StandingsLists")
    if standings:
        for row in standings[0].get("DriverStandings") or []:
            teams = row.get("Constructors") or []
            if teams:
                _link(db, _driver_id(row), str(teams[-1]["constructorId"]))
        db.commit()
        logger.info("Assigned constructors via driver standings")
        return

    logger.info("No standings available for season %s, fetching drivers per constructor", season)
    for team in db.query(Constructor).all():
        try:
            payload = client.get_json(f"{season}/constructors/{team.id}/drivers.json")
        except requests.RequestException:
            logger.exception("Failed to fetch drivers for constructor %s", team.name)
            continue
        for d in _table(payload, "DriverTable", "Drivers"):
            _link(db, str(d["driverId"]), team.id)
    db.commit()
    logger.info("Assigned constructors via per-constructor driver lists")


# -----------------------
# Results
# -----------------------
def update_race_results(db: Session, client: JolpicaClient, race_id: str) -> bool:
    """Back-fill podium and fastest lap; marks the race completed.

    Driver of the day is not published by the API and is left untouched.
    Returns False when there is nothing (yet) to store.
    """
    race = db.get(Race, race_id)
    if race is None:
        return False
    if race.race_completed:
        logger.info("Race %s is already completed, skipping result update", race.race_name)
        return False

    races = _table(client.get_json(f"{race.season}/{race.round}/results.json"), "RaceTable", "Races")
    results = (races[0].get("Results") or []) if races else []
    if len(results) < 3:
        logger.info("No results available yet for %s", race.race_name)
        return False

    race.first_place_driver_id = _driver_id(results[0])
    race.second_place_driver_id = _driver_id(results[1])
    race.third_place_driver_id = _driver_id(results[2])
    for result in results:
        if str((result.get("FastestLap") or {}).get("rank")) == "1":
            race.fastest_lap_driver_id = _driver_id(result)
    race.race_completed = True
    # Committed together with the prediction scores
    db.flush()
    logger.info("Updated results for race %s", race.race_name)
    return True

def fetch_sprint_races(db: Session, client: JolpicaClient, season: int) -> int:
    races = db.query(Race).filter_by(season=season, is_sprint_weekend=True).order_by(Race.round).all()
    created = 0
    for race in races:
        try:
            sprints = _table(client.get_json(f"{race.season}/{race.round}/sprint.json"), "SprintTable", "Sprints")
        except requests.RequestException:
            logger.exception("Failed to fetch sprint race for race %s", race.race_name)
            continue
        if not sprints:
            continue
        if db.query(SprintRace).filter_by(season=race.season, round=race.round).first():
            continue
        db.add(SprintRace(
            id=f"{race.season}-{race.round}-sprint",
            season=race.season,
            round=race.round,
            race_name=f"{race.race_name} Sprint",
            circuit_id=race.circuit_id,
            circuit_name=race.circuit_name,
            country=race.country,
            locality=race.locality,
            date=race.sprint_date or race.date,
            time=race.sprint_time or race.time,
            sprint_qualifying_date=race.sprint_qualifying_date,
            sprint_qualifying_time=race.sprint_qualifying_time,
        ))
        created += 1
    db.commit()
    logger.info("Created %d sprint races for season %s", created, season)
    return created

def update_sprint_results(db: Session, client: JolpicaClient, sprint_race_id: str) -> bool:
    sprint_race = db.get(SprintRace, sprint_race_id)
    if sprint_race is None or sprint_race.sprint_completed:
        return False

    sprints = _table(
        client.get_json(f"{sprint_race.season}/{sprint_race.round}/sprint.json"), "SprintTable", "Sprints"
    )
    results = (sprints[0].get("SprintResults") or []) if sprints else []
    if len(results) < 3:
        return False

    sprint_race.first_place_driver_id = _driver_id(results[0])
    sprint_race.second_place_driver_id = _driver_id(results[1])
    sprint_race.third_place_driver_id = _driver_id(results[2])
    sprint_race.sprint_completed = True
    db.flush()
    logger.info("Updated results for sprint %s", sprint_race.race_name)
    return True

import logging
import sys
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from paddock.core.exceptions import NotFoundError
from paddock.models.f1 import Driver
from paddock.services import openf1 as openf1_service
from paddock.services import races as race_service
from paddock.utils.season import today

logger = logging.getLogger(__name__)

MAX_DRIVERS_PER_TEAM = 2


def to_dict(driver: Driver) -> Dict:
    return {
        "id": driver.id,
        "code": driver.code,
        "number": driver.permanent_number,
        "first_name": driver.given_name,
        "last_name": driver.family_name,
        "nationality": driver.nationality,
        "constructor_id": driver.constructor.id if driver.constructor else None,
        "constructor_name": driver.constructor.name if driver.constructor else None,
        "profile_picture_url": driver.profile_picture_url,
    }

def get_all_drivers(db: Session) -> List[Driver]:
    return db.query(Driver).order_by(Driver.family_name.asc(), Driver.given_name.asc()).all()

def get_driver(db: Session, driver_id: str) -> Driver:
    driver = db.get(Driver, driver_id)
    if driver is None:
        # Three-letter codes ("VER") are accepted as well
        driver = db.query(Driver).filter(func.upper(Driver.code) == driver_id.upper()).first()
    if driver is None:
        raise NotFoundError(f"Driver not found with id: {driver_id}")
    return driver

def _number(driver: Driver) -> int:
    try:
        return int(driver.permanent_number)
    except (TypeError, ValueError):
        return sys.maxsize

def limit_per_team(drivers: List[Driver], per_team: int = MAX_DRIVERS_PER_TEAM) -> List[Driver]:
    """Keep at most `per_team` drivers per constructor, in a stable UI order."""
    ordered = sorted(drivers, key=lambda d: (
        d.constructor.name if d.constructor else "",
        _number(d),
        d.family_name,
        d.given_name,
    ))
    counts: Dict[Optional[str], int] = {}
    kept = []
    for driver in ordered:
        team = driver.constructor_id
        if counts.get(team, 0) < per_team:
            counts[team] = counts.get(team, 0) + 1
            kept.append(driver)
    return kept

def get_active_drivers_for_race(db: Session, race_id: str, openf1=None) -> List[Driver]:
    """Drivers entered for a race.

    From race day on, OpenF1 knows who actually took part (reserve drivers
    included). Before that the DB list is used to keep the UI fast.
    """
    race = race_service.get_race(db, race_id)

    participants: List[Driver] = []
    if openf1 is not None and race.date <= today():
        participants = openf1_service.fetch_active_drivers_for_date(db, openf1, race.date)

    if not participants:
        logger.debug("Using stored driver list for race %s", race_id)
    source = participants or get_all_drivers(db)
    return limit_per_team(source)

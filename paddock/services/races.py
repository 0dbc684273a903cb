from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from paddock.core.exceptions import NotFoundError
from paddock.models.f1 import Race, SprintRace
from paddock.utils.season import current_season, today


def get_season_races(db: Session, season: Optional[int] = None) -> List[Race]:
    return (
        db.query(Race)
        .filter(Race.season == (season or current_season()))
        .order_by(Race.round.asc())
        .all()
    )

def get_upcoming_races(db: Session, on_or_after: Optional[date] = None) -> List[Race]:
    return (
        db.query(Race)
        .filter(Race.date >= (on_or_after or today()))
        .order_by(Race.date.asc(), Race.time.asc())
        .all()
    )

def get_next_race(db: Session) -> Optional[Race]:
    return (
        db.query(Race)
        .filter(Race.date >= today())
        .order_by(Race.date.asc(), Race.time.asc())
        .first()
    )

def get_race(db: Session, race_id: str) -> Race:
    race = db.get(Race, race_id)
    if race is None:
        raise NotFoundError(f"Race not found with id: {race_id}")
    return race

def get_recent_unscored_races(db: Session, days: int = 7) -> List[Race]:
    """Races from the last `days` days that have started but have no results yet."""
    start = date.fromordinal(today().toordinal() - days)
    return [
        r for r in get_upcoming_races(db, on_or_after=start)
        if not r.race_completed and r.date < today()
    ]


def get_season_sprint_races(db: Session, season: Optional[int] = None) -> List[SprintRace]:
    return (
        db.query(SprintRace)
        .filter(SprintRace.season == (season or current_season()))
        .order_by(SprintRace.round.asc())
        .all()
    )

def get_upcoming_sprint_races(db: Session) -> List[SprintRace]:
    return (
        db.query(SprintRace)
        .filter(SprintRace.date >= today())
        .order_by(SprintRace.date.asc(), SprintRace.time.asc())
        .all()
    )

def get_sprint_race(db: Session, sprint_race_id: str) -> SprintRace:
    sprint_race = db.get(SprintRace, sprint_race_id)
    if sprint_race is None:
        raise NotFoundError(f"Sprint race not found with id: {sprint_race_id}")
    return sprint_race

def get_sprint_race_by_round(db: Session, season: int, round_no: int) -> Optional[SprintRace]:
    return db.query(SprintRace).filter_by(season=season, round=round_no).first()

def get_recent_unscored_sprints(db: Session, days: int = 7) -> List[SprintRace]:
    start = date.fromordinal(today().toordinal() - days)
    return (
        db.query(SprintRace)
        .filter(SprintRace.date >= start, SprintRace.date < today(), SprintRace.sprint_completed.is_(False))
        .order_by(SprintRace.date.asc())
        .all()
    )

def set_driver_of_the_day(db: Session, race_id: str, driver_id: str) -> Race:
    # Driver of the day is a fan vote; neither data provider publishes it
    race = get_race(db, race_id)
    race.driver_of_the_day_id = driver_id
    db.flush()
    return race

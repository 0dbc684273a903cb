import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from paddock.core.exceptions import InvalidStateError, NotFoundError
from paddock.models.f1 import SprintRace
from paddock.models.predictions import SprintPrediction, User
from paddock.schemas.predictions import SprintPredictionIn
from paddock.services import scoring
from paddock.utils.season import race_start, utcnow

logger = logging.getLogger(__name__)

PICK_FIELDS = (
    "first_place_driver_id",
    "second_place_driver_id",
    "third_place_driver_id",
)


def _get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user

def _get_sprint_race(db: Session, sprint_race_id: str) -> SprintRace:
    sprint_race = db.get(SprintRace, sprint_race_id)
    if sprint_race is None:
        raise NotFoundError("Sprint race not found")
    return sprint_race

def _to_payload(prediction: SprintPrediction) -> SprintPredictionIn:
    return SprintPredictionIn(**{f: getattr(prediction, f) or "" for f in PICK_FIELDS})


def save_sprint_prediction(db: Session, user_id: int, sprint_race_id: str, payload: SprintPredictionIn,
                           now: Optional[datetime] = None) -> SprintPrediction:
    user = _get_user(db, user_id)
    sprint_race = _get_sprint_race(db, sprint_race_id)

    if sprint_race.sprint_completed:
        raise InvalidStateError(
            "Sprint predictions are no longer accepted. Sprint race has been completed."
        )
    if scoring.predictions_closed(race_start(sprint_race.date, sprint_race.time), now or utcnow()):
        raise InvalidStateError(
            "Sprint predictions are no longer accepted. "
            "Sprint race starts within 5 minutes or has already started."
        )

    prediction = (
        db.query(SprintPrediction)
        .filter(SprintPrediction.user_id == user.id, SprintPrediction.sprint_race_id == sprint_race.id)
        .first()
    )
    if prediction is None:
        prediction = SprintPrediction(user_id=user.id, sprint_race_id=sprint_race.id)
        db.add(prediction)

    for field in PICK_FIELDS:
        setattr(prediction, field, getattr(payload, field) or "")

    db.commit()
    db.refresh(prediction)
    return prediction

def get_user_sprint_prediction(db: Session, user_id: int, sprint_race_id: str) -> Optional[SprintPredictionIn]:
    user = _get_user(db, user_id)
    sprint_race = _get_sprint_race(db, sprint_race_id)
    prediction = (
        db.query(SprintPrediction)
        .filter(SprintPrediction.user_id == user.id, SprintPrediction.sprint_race_id == sprint_race.id)
        .first()
    )
    return _to_payload(prediction) if prediction else None

def calculate_sprint_scores(db: Session, sprint_race_id: str) -> int:
    sprint_race = _get_sprint_race(db, sprint_race_id)
    if not sprint_race.sprint_completed or sprint_race.first_place_driver_id is None:
        raise InvalidStateError("Sprint race results not available yet")

    predictions = (
        db.query(SprintPrediction)
        .filter(SprintPrediction.sprint_race_id == sprint_race.id)
        .all()
    )
    for prediction in predictions:
        prediction.score = scoring.score_sprint_prediction(prediction, sprint_race)
    db.commit()

    logger.info("Scored %d sprint predictions for %s", len(predictions), sprint_race.id)
    return len(predictions)

def get_user_season_sprint_score(db: Session, user_id: int, season: int) -> int:
    total = (
        db.query(func.coalesce(func.sum(SprintPrediction.score), 0))
        .join(SprintRace, SprintRace.id == SprintPrediction.sprint_race_id)
        .filter(SprintPrediction.user_id == user_id, SprintRace.season == season)
        .scalar()
    )
    return int(total or 0)

def get_sprint_race_results(db: Session, sprint_race_id: str) -> List[Dict]:
    sprint_race = _get_sprint_race(db, sprint_race_id)
    predictions = (
        db.query(SprintPrediction)
        .join(User, User.id == SprintPrediction.user_id)
        .filter(SprintPrediction.sprint_race_id == sprint_race.id)
        .order_by(func.coalesce(SprintPrediction.score, -1).desc(), User.name.asc())
        .all()
    )
    return [
        {
            "user_id": p.user.id,
            "user_name": p.user.name,
            "profile_picture_url": p.user.profile_picture_url,
            "score": p.score or 0,
            "prediction": _to_payload(p),
        } for p in predictions
    ]

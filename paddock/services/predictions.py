import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from paddock.core.exceptions import InvalidStateError, NotFoundError
from paddock.models.f1 import Race
from paddock.models.predictions import Prediction, User
from paddock.schemas.predictions import PredictionIn
from paddock.services import scoring
from paddock.utils.season import current_season, race_start, utcnow

logger = logging.getLogger(__name__)

PICK_FIELDS = (
    "first_place_driver_id",
    "second_place_driver_id",
    "third_place_driver_id",
    "fastest_lap_driver_id",
    "driver_of_the_day_id",
)


def _get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user

def _get_race(db: Session, race_id: str) -> Race:
    race = db.get(Race, race_id)
    if race is None:
        raise NotFoundError("Race not found")
    return race

def _to_payload(prediction: Prediction) -> PredictionIn:
    return PredictionIn(**{f: getattr(prediction, f) or "" for f in PICK_FIELDS})


def save_prediction(db: Session, user_id: int, race_id: str, payload: PredictionIn,
                    now: Optional[datetime] = None) -> Prediction:
    """Create or update the user's prediction for a race while it is still open."""
    user = _get_user(db, user_id)
    race = _get_race(db, race_id)

    if race.race_completed:
        raise InvalidStateError("Predictions are no longer accepted. Race has been completed.")
    if scoring.predictions_closed(race_start(race.date, race.time), now or utcnow()):
        raise InvalidStateError(
            "Predictions are no longer accepted. Race starts within 5 minutes or has already started."
        )

    prediction = (
        db.query(Prediction)
        .filter(Prediction.user_id == user.id, Prediction.race_id == race.id)
        .first()
    )
    if prediction is None:
        prediction = Prediction(user_id=user.id, race_id=race.id)
        db.add(prediction)

    for field in PICK_FIELDS:
        setattr(prediction, field, getattr(payload, field) or "")

    db.commit()
    db.refresh(prediction)
    return prediction

def get_user_prediction(db: Session, user_id: int, race_id: str) -> Optional[PredictionIn]:
    user = _get_user(db, user_id)
    race = _get_race(db, race_id)
    prediction = (
        db.query(Prediction)
        .filter(Prediction.user_id == user.id, Prediction.race_id == race.id)
        .first()
    )
    return _to_payload(prediction) if prediction else None

def calculate_scores(db: Session, race_id: str) -> int:
    """Score every prediction for a completed race. Overwrites earlier scores."""
    race = _get_race(db, race_id)
    if not race.race_completed or race.first_place_driver_id is None:
        raise InvalidStateError("Race results not available yet")

    predictions = db.query(Prediction).filter(Prediction.race_id == race.id).all()
    for prediction in predictions:
        prediction.score = scoring.score_prediction(prediction, race)
    db.commit()

    logger.info("Scored %d predictions for race %s", len(predictions), race.id)
    return len(predictions)


def _leaderboard(db: Session, season: int, before_round: Optional[int] = None) -> List[Dict]:
    total = func.coalesce(func.sum(Prediction.score), 0)
    q = (
        db.query(
            User.id.label("user_id"),
            User.name.label("user_name"),
            User.profile_picture_url.label("profile_picture_url"),
            total.label("total_score"),
        )
        .join(Prediction, Prediction.user_id == User.id)
        .join(Race, Race.id == Prediction.race_id)
        .filter(Race.season == season)
    )
    if before_round is not None:
        q = q.filter(Race.round < before_round)

    rows = (
        q.group_by(User.id, User.name, User.profile_picture_url)
        .order_by(total.desc(), User.name.asc(), User.id.asc())
        .all()
    )
    return [
        {
            "user_id": r.user_id,
            "user_name": r.user_name,
            "profile_picture_url": r.profile_picture_url,
            "total_score": int(r.total_score or 0),
        } for r in rows
    ]

def get_season_leaderboard(db: Session, season: Optional[int] = None) -> List[Dict]:
    return _leaderboard(db, season or current_season())

def get_season_leaderboard_before_race(db: Session, race_id: str, season: int) -> List[Dict]:
    """Leaderboard as it stood before `race_id`: only rounds strictly earlier count."""
    race = _get_race(db, race_id)
    return _leaderboard(db, season, before_round=race.round)

def get_user_season_score(db: Session, user_id: int, season: Optional[int] = None) -> int:
    total = (
        db.query(func.coalesce(func.sum(Prediction.score), 0))
        .join(Race, Race.id == Prediction.race_id)
        .filter(Prediction.user_id == user_id, Race.season == (season or current_season()))
        .scalar()
    )
    return int(total or 0)

def get_race_results(db: Session, race_id: str) -> List[Dict]:
    """Predictions for a race, best score first, with season position movement."""
    race = _get_race(db, race_id)

    current_positions = scoring.rank_positions(get_season_leaderboard(db, race.season))
    previous_positions = scoring.rank_positions(
        get_season_leaderboard_before_race(db, race.id, race.season)
    )

    predictions = (
        db.query(Prediction)
        .join(User, User.id == Prediction.user_id)
        .filter(Prediction.race_id == race.id)
        .order_by(func.coalesce(Prediction.score, -1).desc(), User.name.asc())
        .all()
    )
    return [
        {
            "user_id": p.user.id,
            "user_name": p.user.name,
            "profile_picture_url": p.user.profile_picture_url,
            "score": p.score or 0,
            "prediction": _to_payload(p),
            "season_position": current_positions.get(p.user.id),
            "previous_season_position": previous_positions.get(p.user.id),
        } for p in predictions
    ]

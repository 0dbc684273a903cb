"""
Dashboard statistics over completed races.

Every stat is a plain dict, computed from the DB and cached in the
`api_cache` table under "stats://<key>" for `stats_cache_ttl_hours`. The
cache is best effort: read or write failures are logged and the stat is
computed from scratch.
"""
import json
import logging
from collections import Counter, defaultdict
from datetime import timedelta
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from paddock.core.config import settings
from paddock.models.cache import ApiCache
from paddock.models.f1 import Driver, Race
from paddock.models.predictions import Prediction, User
from paddock.utils.season import utcnow

logger = logging.getLogger(__name__)

CACHE_PREFIX = "stats://"

PREDICTION_TYPES = {
    "first_place": "first_place_driver_id",
    "second_place": "second_place_driver_id",
    "third_place": "third_place_driver_id",
    "fastest_lap": "fastest_lap_driver_id",
    "driver_of_the_day": "driver_of_the_day_id",
}


def _pct(part: int, whole: int) -> float:
    return (part / whole) * 100 if whole > 0 else 0.0

def _podium_hit(prediction: Prediction, race: Race) -> bool:
    return (
        prediction.first_place_driver_id == race.first_place_driver_id
        or prediction.second_place_driver_id == race.second_place_driver_id
        or prediction.third_place_driver_id == race.third_place_driver_id
    )

def _any_hit(prediction: Prediction, race: Race) -> bool:
    return (
        _podium_hit(prediction, race)
        or prediction.fastest_lap_driver_id == race.fastest_lap_driver_id
        or prediction.driver_of_the_day_id == race.driver_of_the_day_id
    )

def _completed_races(db: Session) -> List[Race]:
    return (
        db.query(Race)
        .options(selectinload(Race.predictions).selectinload(Prediction.user))
        .filter(Race.race_completed.is_(True))
        .order_by(Race.season.asc(), Race.round.asc())
        .all()
    )


# -----------------------
# DB cache
# -----------------------
def _from_cache(db: Session, key: str) -> Optional[Dict[str, Any]]:
    try:
        cached = (
            db.query(ApiCache)
            .filter(ApiCache.url == CACHE_PREFIX + key, ApiCache.expires_at > utcnow())
            .first()
        )
        if cached is None:
            return None
        logger.debug("Stats cache hit for %s", key)
        return json.loads(cached.response_data)
    except (SQLAlchemyError, ValueError):
        logger.warning("Failed to load stats from database cache for %s", key, exc_info=True)
        db.rollback()
        return None

def _store(db: Session, key: str, result: Dict[str, Any]) -> None:
    try:
        payload = json.dumps(result, default=str)
        now = utcnow()
        db.merge(ApiCache(
            url=CACHE_PREFIX + key,
            response_data=payload,
            last_fetched=now,
            expires_at=now + timedelta(hours=settings.stats_cache_ttl_hours),
            response_size=len(payload.encode("utf-8")),
            http_status=200,
        ))
        db.commit()
    except SQLAlchemyError:
        logger.warning("Failed to store stats in database cache for %s", key, exc_info=True)
        db.rollback()

def _cached(db: Session, key: str, compute: Callable[[Session], Dict[str, Any]]) -> Dict[str, Any]:
    hit = _from_cache(db, key)
    if hit is not None:
        return hit
    result = compute(db)
    _store(db, key, result)
    return result

def clear_cache(db: Session) -> int:
    removed = db.query(ApiCache).filter(ApiCache.url.like(CACHE_PREFIX + "%")).delete(synchronize_session=False)
    db.commit()
    logger.info("Cleared %d cached stats", removed)
    return removed


# -----------------------
# Stats
# -----------------------
def _driver_performance(db: Session) -> Dict[str, Any]:
    races = _completed_races(db)
    drivers = db.query(Driver).all()
    predictions = [p for r in races for p in r.predictions]

    rows = []
    for d in drivers:
        podiums = sum(
            1 for r in races
            if d.id in (r.first_place_driver_id, r.second_place_driver_id, r.third_place_driver_id)
        )
        predicted = sum(
            1 for p in predictions
            if d.id in (p.first_place_driver_id, p.second_place_driver_id, p.third_place_driver_id)
        )
        rows.append({
            "driver_id": d.id,
            "driver_name": d.full_name,
            "driver_code": d.code,
            "constructor": d.constructor.name if d.constructor else None,
            "correct_predictions": podiums,
            "total_predictions": predicted,
            "success_rate": _pct(podiums, predicted),
            "podium_finishes": podiums,
        })
    rows.sort(key=lambda r: r["success_rate"], reverse=True)
    return {"driver_stats": rows, "total_races": len(races), "total_drivers": len(drivers)}

def _prediction_accuracy(db: Session) -> Dict[str, Any]:
    races = _completed_races(db)
    total = sum(len(r.predictions) for r in races)

    by_type = {}
    for name, attr in PREDICTION_TYPES.items():
        correct = sum(
            1 for r in races for p in r.predictions
            if getattr(p, attr) == getattr(r, attr)
        )
        by_type[name] = {
            "total_predictions": total,
            "correct_predictions": correct,
            "accuracy": _pct(correct, total),
        }
    return {"accuracy_by_type": by_type, "total_races": len(races)}

def _circuit_difficulty(db: Session) -> Dict[str, Any]:
    by_circuit = defaultdict(list)
    for race in _completed_races(db):
        by_circuit[race.circuit_name].append(race)

    rows = []
    for circuit_name, races in by_circuit.items():
        total = sum(len(r.predictions) for r in races)
        correct = sum(1 for r in races for p in r.predictions if _podium_hit(p, r))
        accuracy = _pct(correct, total)
        rows.append({
            "circuit_name": circuit_name,
            "total_predictions": total,
            "correct_predictions": correct,
            "accuracy": accuracy,
            "difficulty": 100 - accuracy,
            "race_count": len(races),
            "country": races[0].country,
        })
    rows.sort(key=lambda r: r["difficulty"])
    return {"circuit_stats": rows, "total_circuits": len(rows)}

def _user_comparison(db: Session) -> Dict[str, Any]:
    users = db.query(User).all()
    by_user = defaultdict(list)
    for race in _completed_races(db):
        for p in race.predictions:
            by_user[p.user_id].append((p, race))

    rows = []
    for u in users:
        picks = by_user.get(u.id, [])
        correct = sum(1 for p, r in picks if _any_hit(p, r))
        total_score = sum(p.score or 0 for p, _ in picks)
        rows.append({
            "user_id": u.id,
            "user_name": u.name,
            "profile_picture_url": u.profile_picture_url,
            "total_predictions": len(picks),
            "correct_predictions": correct,
            "accuracy": _pct(correct, len(picks)),
            "total_score": total_score,
            "average_score": total_score / len(picks) if picks else 0.0,
        })
    rows.sort(key=lambda r: r["total_score"], reverse=True)
    return {"user_stats": rows, "total_users": len(users)}

def _season_progress(db: Session) -> Dict[str, Any]:
    races = sorted(_completed_races(db), key=lambda r: r.round)
    rows = []
    for r in races:
        total = len(r.predictions)
        correct = sum(1 for p in r.predictions if _any_hit(p, r))
        rows.append({
            "race_id": r.id,
            "race_name": r.race_name,
            "round": r.round,
            "circuit_name": r.circuit_name,
            "total_predictions": total,
            "correct_predictions": correct,
            "accuracy": _pct(correct, total),
            "average_score": sum(p.score or 0 for p in r.predictions) / total if total else 0.0,
            "date": r.date.isoformat(),
        })
    return {"race_progress": rows, "total_races": len(races)}

def _constructor_performance(db: Session) -> Dict[str, Any]:
    races = _completed_races(db)
    drivers = db.query(Driver).filter(Driver.constructor_id.isnot(None)).all()

    teams = {}
    driver_ids = defaultdict(set)
    for d in drivers:
        teams[d.constructor.id] = d.constructor
        driver_ids[d.constructor.id].add(d.id)

    rows = []
    for team_id, team in teams.items():
        ids = driver_ids[team_id]
        total = correct = 0
        for r in races:
            actual = {r.first_place_driver_id, r.second_place_driver_id, r.third_place_driver_id}
            for p in r.predictions:
                picked = {p.first_place_driver_id, p.second_place_driver_id, p.third_place_driver_id}
                if picked & ids:
                    total += 1
                    if actual & ids:
                        correct += 1
        rows.append({
            "constructor_id": team.id,
            "constructor_name": team.name,
            "correct_predictions": correct,
            "total_predictions": total,
            "success_rate": _pct(correct, total),
            "driver_count": len(ids),
        })
    rows.sort(key=lambda r: r["success_rate"], reverse=True)
    return {"constructor_stats": rows, "total_constructors": len(rows)}

def _overview(db: Session) -> Dict[str, Any]:
    total_predictions = db.query(func.count(Prediction.id)).scalar() or 0
    average = db.query(func.avg(Prediction.score)).scalar() if total_predictions else None

    counts = Counter()
    for first, second, third in db.query(
        Prediction.first_place_driver_id,
        Prediction.second_place_driver_id,
        Prediction.third_place_driver_id,
    ):
        counts.update(pick for pick in (first, second, third) if pick)

    most_predicted = None
    if counts:
        driver = db.get(Driver, counts.most_common(1)[0][0])
        if driver is not None:
            most_predicted = {
                "driver_id": driver.id,
                "driver_name": driver.full_name,
                "driver_code": driver.code,
            }

    return {
        "total_users": db.query(func.count(User.id)).scalar() or 0,
        "total_races": db.query(func.count(Race.id)).scalar() or 0,
        "completed_races": db.query(func.count(Race.id)).filter(Race.race_completed.is_(True)).scalar() or 0,
        "total_predictions": total_predictions,
        "total_drivers": db.query(func.count(Driver.id)).scalar() or 0,
        "average_score": float(average or 0.0),
        "most_predicted_driver": most_predicted,
    }


def get_driver_performance_stats(db: Session) -> Dict[str, Any]:
    return _cached(db, "driverPerformance", _driver_performance)

def get_prediction_accuracy_stats(db: Session) -> Dict[str, Any]:
    return _cached(db, "predictionAccuracy", _prediction_accuracy)

def get_circuit_difficulty_stats(db: Session) -> Dict[str, Any]:
    return _cached(db, "circuitDifficulty", _circuit_difficulty)

def get_user_comparison_stats(db: Session) -> Dict[str, Any]:
    return _cached(db, "userComparison", _user_comparison)

def get_season_progress_stats(db: Session) -> Dict[str, Any]:
    return _cached(db, "seasonProgress", _season_progress)

def get_constructor_performance_stats(db: Session) -> Dict[str, Any]:
    return _cached(db, "constructorPerformance", _constructor_performance)

def get_stats_overview(db: Session) -> Dict[str, Any]:
    return _cached(db, "overview", _overview)

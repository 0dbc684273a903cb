"""
Point rules for race and sprint predictions.

A race prediction earns 5 points for the winner, 3 for second, 1 for third,
1 for fastest lap and 1 for driver of the day (11 max). Sprint predictions
only cover the podium (9 max). A pick scores only when it is set and equals
the official result; an empty pick never scores.
"""
from datetime import datetime
from typing import Dict, Iterable, List, Tuple

PREDICTION_CUTOFF_MINUTES = 5

# (prediction attribute, race attribute, points)
RACE_POINTS: List[Tuple[str, str, int]] = [
    ("first_place_driver_id", "first_place_driver_id", 5),
    ("second_place_driver_id", "second_place_driver_id", 3),
    ("third_place_driver_id", "third_place_driver_id", 1),
    ("fastest_lap_driver_id", "fastest_lap_driver_id", 1),
    ("driver_of_the_day_id", "driver_of_the_day_id", 1),
]

SPRINT_POINTS: List[Tuple[str, str, int]] = RACE_POINTS[:3]

MAX_RACE_SCORE = sum(p for _, _, p in RACE_POINTS)
MAX_SPRINT_SCORE = sum(p for _, _, p in SPRINT_POINTS)


def _score(prediction, result, rules) -> int:
    score = 0
    for pick_attr, result_attr, points in rules:
        pick = getattr(prediction, pick_attr) or ""
        if pick and pick == getattr(result, result_attr):
            score += points
    return score

def score_prediction(prediction, race) -> int:
    return _score(prediction, race, RACE_POINTS)

def score_sprint_prediction(prediction, sprint_race) -> int:
    return _score(prediction, sprint_race, SPRINT_POINTS)

def minutes_until(starts_at: datetime, now: datetime) -> int:
    """Whole minutes until `starts_at`, truncated toward zero."""
    return int((starts_at - now).total_seconds() / 60)

def predictions_closed(starts_at: datetime, now: datetime) -> bool:
    """Closed once the start is less than 5 whole minutes away, or past."""
    return minutes_until(starts_at, now) < PREDICTION_CUTOFF_MINUTES

def rank_positions(entries: Iterable[Dict]) -> Dict[int, int]:
    """Map user_id -> 1-based position for an already ordered leaderboard."""
    return {entry["user_id"]: index + 1 for index, entry in enumerate(entries)}

from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from paddock.db.session import get_db
from paddock.schemas.races import SprintRace
from paddock.services import races as race_service

router = APIRouter()

@router.get("/current-season", response_model=List[SprintRace])
def current_season_sprint_races(db: Session = Depends(get_db)):
    return race_service.get_season_sprint_races(db)

@router.get("/upcoming", response_model=List[SprintRace])
def upcoming_sprint_races(db: Session = Depends(get_db)):
    return race_service.get_upcoming_sprint_races(db)

@router.get("/season/{season}/round/{round_no}", response_model=SprintRace)
def sprint_race_by_round(season: int, round_no: int, db: Session = Depends(get_db)):
    sprint_race = race_service.get_sprint_race_by_round(db, season, round_no)
    if sprint_race is None:
        raise HTTPException(404, f"No sprint race for season {season} round {round_no}")
    return sprint_race

@router.get("/{sprint_race_id}", response_model=SprintRace)
def sprint_race_by_id(sprint_race_id: str, db: Session = Depends(get_db)):
    return race_service.get_sprint_race(db, sprint_race_id)

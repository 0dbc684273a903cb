from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from paddock.db.session import get_db
from paddock.schemas.races import Race
from paddock.services import races as race_service

router = APIRouter()

@router.get("/current-season", response_model=List[Race])
def current_season_races(db: Session = Depends(get_db)):
    return race_service.get_season_races(db)

@router.get("/upcoming", response_model=List[Race])
def upcoming_races(db: Session = Depends(get_db)):
    return race_service.get_upcoming_races(db)

@router.get("/next", response_model=Race)
def next_race(db: Session = Depends(get_db)):
    race = race_service.get_next_race(db)
    if race is None:
        raise HTTPException(404, "No upcoming race")
    return race

@router.get("/{race_id}", response_model=Race)
def race_by_id(race_id: str, db: Session = Depends(get_db)):
    return race_service.get_race(db, race_id)

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from paddock.core.security import get_current_user
from paddock.db.session import get_db
from paddock.models.predictions import User
from paddock.schemas.predictions import SprintPredictionIn, SprintPredictionResult
from paddock.services import sprint_predictions as sprint_service
from paddock.utils.season import current_season

router = APIRouter()

@router.get("/user/{user_id}/score", response_model=int)
def user_season_sprint_score(user_id: int, season: Optional[int] = Query(None, ge=1950),
                             db: Session = Depends(get_db)):
    return sprint_service.get_user_season_sprint_score(db, user_id, season or current_season())

@router.get("/user/{user_id}/sprint-race/{sprint_race_id}", response_model=SprintPredictionIn)
def user_sprint_prediction(user_id: int, sprint_race_id: str, db: Session = Depends(get_db),
                           _: User = Depends(get_current_user)):
    prediction = sprint_service.get_user_sprint_prediction(db, user_id, sprint_race_id)
    if prediction is None:
        raise HTTPException(404, "Sprint prediction not found")
    return prediction

@router.get("/sprint-race/{sprint_race_id}/results", response_model=List[SprintPredictionResult])
def sprint_race_results(sprint_race_id: str, db: Session = Depends(get_db)):
    return sprint_service.get_sprint_race_results(db, sprint_race_id)

@router.post("/{sprint_race_id}", response_model=SprintPredictionIn)
def save_sprint_prediction(sprint_race_id: str, payload: SprintPredictionIn, db: Session = Depends(get_db),
                           user: User = Depends(get_current_user)):
    sprint_service.save_sprint_prediction(db, user.id, sprint_race_id, payload)
    return payload

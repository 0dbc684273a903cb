from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from paddock.core.security import get_current_user
from paddock.db.session import get_db
from paddock.models.predictions import User
from paddock.schemas.predictions import LeaderboardEntry, PredictionIn, PredictionResult
from paddock.services import predictions as pred_service

router = APIRouter()

@router.get("/leaderboard", response_model=List[LeaderboardEntry])
def season_leaderboard(season: Optional[int] = Query(None, ge=1950), db: Session = Depends(get_db)):
    return pred_service.get_season_leaderboard(db, season)

@router.get("/user/{user_id}/score", response_model=int)
def user_season_score(user_id: int, season: Optional[int] = Query(None, ge=1950), db: Session = Depends(get_db)):
    return pred_service.get_user_season_score(db, user_id, season)

@router.get("/user/{user_id}/race/{race_id}", response_model=PredictionIn)
def user_prediction(user_id: int, race_id: str, db: Session = Depends(get_db),
                    _: User = Depends(get_current_user)):
    prediction = pred_service.get_user_prediction(db, user_id, race_id)
    if prediction is None:
        raise HTTPException(404, "Prediction not found")
    return prediction

@router.get("/race/{race_id}/results", response_model=List[PredictionResult])
def race_results(race_id: str, db: Session = Depends(get_db)):
    return pred_service.get_race_results(db, race_id)

@router.post("/{race_id}", response_model=PredictionIn)
def save_prediction(race_id: str, payload: PredictionIn, db: Session = Depends(get_db),
                    user: User = Depends(get_current_user)):
    pred_service.save_prediction(db, user.id, race_id, payload)
    return payload

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from paddock.core.security import get_current_user
from paddock.db.session import get_db
from paddock.models.predictions import User
from paddock.services import stats as stats_service

router = APIRouter()

@router.get("/driver-performance")
def driver_performance(db: Session = Depends(get_db)):
    return stats_service.get_driver_performance_stats(db)

@router.get("/prediction-accuracy")
def prediction_accuracy(db: Session = Depends(get_db)):
    return stats_service.get_prediction_accuracy_stats(db)

@router.get("/circuit-difficulty")
def circuit_difficulty(db: Session = Depends(get_db)):
    return stats_service.get_circuit_difficulty_stats(db)

# Lists every user, so it is not public
@router.get("/user-comparison")
def user_comparison(db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    return stats_service.get_user_comparison_stats(db)

@router.get("/season-progress")
def season_progress(db: Session = Depends(get_db)):
    return stats_service.get_season_progress_stats(db)

@router.get("/constructor-performance")
def constructor_performance(db: Session = Depends(get_db)):
    return stats_service.get_constructor_performance_stats(db)

@router.get("/overview")
def overview(db: Session = Depends(get_db)):
    return stats_service.get_stats_overview(db)

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from paddock.db.session import get_db
from paddock.schemas.drivers import Driver
from paddock.services import drivers as driver_service
from paddock.services.openf1 import OpenF1Client

router = APIRouter()

def get_openf1() -> OpenF1Client:
    return OpenF1Client()

@router.get("", response_model=List[Driver])
def all_drivers(db: Session = Depends(get_db)):
    return [driver_service.to_dict(d) for d in driver_service.get_all_drivers(db)]

@router.get("/race/{race_id}/active", response_model=List[Driver])
def active_drivers(race_id: str, db: Session = Depends(get_db), openf1: OpenF1Client = Depends(get_openf1)):
    drivers = driver_service.get_active_drivers_for_race(db, race_id, openf1=openf1)
    return [driver_service.to_dict(d) for d in drivers]

@router.get("/{driver_id}", response_model=Driver)
def driver_by_id(driver_id: str, db: Session = Depends(get_db)):
    return driver_service.to_dict(driver_service.get_driver(db, driver_id))

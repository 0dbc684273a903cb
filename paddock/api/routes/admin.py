from functools import lru_cache

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from paddock.core.security import require_admin
from paddock.db.session import get_db
from paddock.models.f1 import Race
from paddock.schemas.races import DriverOfTheDay, Race as RaceOut
from paddock.services import drivers as driver_service
from paddock.services import predictions as pred_service
from paddock.services import races as race_service
from paddock.services import stats as stats_service
from paddock.services.datasync import DataSync
from paddock.utils.season import current_season, today

router = APIRouter(dependencies=[Depends(require_admin)])


@lru_cache()
def get_datasync() -> DataSync:
    return DataSync()

@router.post("/update-driver-photos")
def update_driver_photos(sync: DataSync = Depends(get_datasync)):
    counts = sync.update_driver_profile_pictures()
    return {"message": "Driver photos updated successfully", **counts}

@router.post("/process-completed-races")
def process_completed_races(sync: DataSync = Depends(get_datasync)):
    names = sync.check_for_completed_races()
    if not names:
        return {"message": "No races need processing", "processed_races": 0, "processed_race_names": []}
    return {
        "message": f"Successfully processed {len(names)} races",
        "processed_races": len(names),
        "processed_race_names": names,
    }

@router.post("/sync-race-data")
def sync_race_data(sync: DataSync = Depends(get_datasync)):
    sync.sync_current_season_data()
    return {"message": "Race data synced successfully"}

@router.post("/force-sync-race-data")
def force_sync_race_data(sync: DataSync = Depends(get_datasync)):
    count = sync.force_sync_current_season_data()
    return {"message": "Race data force synced successfully", "synced_races": count, "season": current_season()}

@router.post("/force-sync-weekend-schedules")
def force_sync_weekend_schedules(sync: DataSync = Depends(get_datasync)):
    count = sync.force_sync_weekend_schedules()
    return {"message": "Weekend schedules force synced successfully", "updated_races": count, "season": current_season()}

@router.post("/sync-driver-data")
def sync_driver_data(sync: DataSync = Depends(get_datasync)):
    sync.sync_driver_data()
    return {"message": "Driver data synced successfully"}

@router.put("/races/{race_id}/driver-of-the-day", response_model=RaceOut)
def set_driver_of_the_day(race_id: str, body: DriverOfTheDay, db: Session = Depends(get_db)):
    driver = driver_service.get_driver(db, body.driver_id)
    race = race_service.set_driver_of_the_day(db, race_id, driver.id)
    # Late vote results change scores that are already out
    if race.race_completed and race.first_place_driver_id:
        pred_service.calculate_scores(db, race.id)
        stats_service.clear_cache(db)
    else:
        db.commit()
    db.refresh(race)
    return race

@router.get("/system-status")
def system_status(db: Session = Depends(get_db)):
    return {
        "total_races": db.query(Race).count(),
        "completed_races": db.query(Race).filter(Race.race_completed.is_(True)).count(),
        "pending_races": len(race_service.get_upcoming_races(db)),
        "last_sync": today().isoformat(),
    }

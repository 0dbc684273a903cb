from datetime import date, time
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Race(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    season: int
    round: int
    race_name: str
    circuit_name: str
    country: str
    locality: str
    date: date
    time: time

    practice1_date: Optional[date] = None
    practice1_time: Optional[time] = None
    practice2_date: Optional[date] = None
    practice2_time: Optional[time] = None
    practice3_date: Optional[date] = None
    practice3_time: Optional[time] = None
    qualifying_date: Optional[date] = None
    qualifying_time: Optional[time] = None

    is_sprint_weekend: bool = False
    sprint_date: Optional[date] = None
    sprint_time: Optional[time] = None
    sprint_qualifying_date: Optional[date] = None
    sprint_qualifying_time: Optional[time] = None

    first_place_driver_id: Optional[str] = None
    second_place_driver_id: Optional[str] = None
    third_place_driver_id: Optional[str] = None
    fastest_lap_driver_id: Optional[str] = None
    driver_of_the_day_id: Optional[str] = None
    completed: bool = Field(False, validation_alias="race_completed")

    @field_validator("is_sprint_weekend", mode="before")
    @classmethod
    def unknown_is_not_sprint(cls, v):
        return bool(v)

class SprintRace(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    season: int
    round: int
    race_name: str
    circuit_name: str
    country: str
    locality: str
    date: date
    time: time

    sprint_qualifying_date: Optional[date] = None
    sprint_qualifying_time: Optional[time] = None

    first_place_driver_id: Optional[str] = None
    second_place_driver_id: Optional[str] = None
    third_place_driver_id: Optional[str] = None
    completed: bool = Field(False, validation_alias="sprint_completed")

class DriverOfTheDay(BaseModel):
    driver_id: str

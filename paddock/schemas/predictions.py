from typing import Optional

from pydantic import BaseModel, field_validator


class PredictionIn(BaseModel):
    first_place_driver_id: str = ""
    second_place_driver_id: str = ""
    third_place_driver_id: str = ""
    fastest_lap_driver_id: str = ""
    driver_of_the_day_id: str = ""

    # Clients send null for an unset pick; we store ""
    @field_validator("*", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return "" if v is None else v

class SprintPredictionIn(BaseModel):
    first_place_driver_id: str = ""
    second_place_driver_id: str = ""
    third_place_driver_id: str = ""

    @field_validator("*", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return "" if v is None else v

class PredictionResult(BaseModel):
    user_id: int
    user_name: str
    profile_picture_url: Optional[str] = None
    score: int
    prediction: PredictionIn
    season_position: Optional[int] = None
    previous_season_position: Optional[int] = None

class SprintPredictionResult(BaseModel):
    user_id: int
    user_name: str
    profile_picture_url: Optional[str] = None
    score: int
    prediction: SprintPredictionIn

class LeaderboardEntry(BaseModel):
    user_id: int
    user_name: str
    profile_picture_url: Optional[str] = None
    total_score: int

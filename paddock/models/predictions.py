from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship
from paddock.db.base import Base


def _utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    __tablename__ = "users"
    __table_args__ = (Index("idx_users_email", "email"),)
    id = Column(Integer, primary_key=True, index=True)
    facebook_id = Column(String, nullable=False, unique=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    profile_picture_url = Column(String, nullable=True)
    is_admin = Column(Boolean, nullable=False, default=False)

    predictions = relationship("Prediction", back_populates="user", cascade="all, delete-orphan")
    sprint_predictions = relationship("SprintPrediction", back_populates="user", cascade="all, delete-orphan")

class Prediction(Base):
    __tablename__ = "predictions"
    __table_args__ = (UniqueConstraint("user_id", "race_id", name="idx_predictions_user_race"),)
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    race_id = Column(String, ForeignKey("races.id", ondelete="CASCADE"), nullable=False, index=True)

    # "" means "no pick", never NULL
    first_place_driver_id = Column(String, nullable=False, default="")
    second_place_driver_id = Column(String, nullable=False, default="")
    third_place_driver_id = Column(String, nullable=False, default="")
    fastest_lap_driver_id = Column(String, nullable=False, default="")
    driver_of_the_day_id = Column(String, nullable=False, default="")

    score = Column(Integer, nullable=True)          # NULL until the race is scored
    created_at = Column(DateTime, nullable=False, default=_utcnow)

    user = relationship("User", back_populates="predictions")
    race = relationship("Race", back_populates="predictions")

class SprintPrediction(Base):
    __tablename__ = "sprint_predictions"
    __table_args__ = (UniqueConstraint("user_id", "sprint_race_id", name="idx_sprint_predictions_user_race"),)
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    sprint_race_id = Column(String, ForeignKey("sprint_races.id", ondelete="CASCADE"), nullable=False, index=True)

    first_place_driver_id = Column(String, nullable=False, default="")
    second_place_driver_id = Column(String, nullable=False, default="")
    third_place_driver_id = Column(String, nullable=False, default="")

    score = Column(Integer, nullable=True)
    created_at = Column(DateTime, nullable=False, default=_utcnow)

    user = relationship("User", back_populates="sprint_predictions")
    sprint_race = relationship("SprintRace", back_populates="sprint_predictions")


import paddock.models.f1  # noqa: E402,F401

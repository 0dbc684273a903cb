from sqlalchemy import Boolean, Column, Date, ForeignKey, Index, Integer, String, Time, UniqueConstraint
from sqlalchemy.orm import relationship
from paddock.db.base import Base


class Constructor(Base):
    __tablename__ = "constructors"
    __table_args__ = (Index("idx_constructors_name", "name"),)
    id = Column(String, primary_key=True)           # Ergast constructorId, e.g. "red_bull"
    name = Column(String, nullable=False)
    nationality = Column(String, nullable=False, default="")
    url = Column(String, nullable=False, default="")
    drivers = relationship("Driver", back_populates="constructor")

class Driver(Base):
    __tablename__ = "drivers"
    id = Column(String, primary_key=True)           # Ergast driverId, e.g. "max_verstappen"
    code = Column(String, nullable=False, default="")
    permanent_number = Column(String, nullable=True)
    given_name = Column(String, nullable=False)
    family_name = Column(String, nullable=False)
    date_of_birth = Column(String, nullable=False, default="")
    nationality = Column(String, nullable=False, default="")
    url = Column(String, nullable=False, default="")
    profile_picture_url = Column(String, nullable=True)
    constructor_id = Column(String, ForeignKey("constructors.id", ondelete="SET NULL"), nullable=True)
    constructor = relationship("Constructor", back_populates="drivers")

    @property
    def full_name(self) -> str:
        return f"{self.given_name} {self.family_name}"

class Race(Base):
    __tablename__ = "races"
    __table_args__ = (
        UniqueConstraint("season", "round", name="unique_races_season_round"),
        Index("idx_races_season", "season"),
        Index("idx_races_race_completed", "race_completed"),
    )
    id = Column(String, primary_key=True)           # "{season}-{round}"
    season = Column(Integer, nullable=False)
    round = Column(Integer, nullable=False)
    race_name = Column(String, nullable=False)
    circuit_id = Column(String, nullable=False)
    circuit_name = Column(String, nullable=False)
    country = Column(String, nullable=False)
    locality = Column(String, nullable=False)

    # Start of the race, UTC
    date = Column(Date, nullable=False)
    time = Column(Time, nullable=False)

    practice1_date = Column(Date, nullable=True)
    practice1_time = Column(Time, nullable=True)
    practice2_date = Column(Date, nullable=True)
    practice2_time = Column(Time, nullable=True)
    practice3_date = Column(Date, nullable=True)
    practice3_time = Column(Time, nullable=True)
    qualifying_date = Column(Date, nullable=True)
    qualifying_time = Column(Time, nullable=True)

    is_sprint_weekend = Column(Boolean, nullable=True)
    sprint_date = Column(Date, nullable=True)
    sprint_time = Column(Time, nullable=True)
    sprint_qualifying_date = Column(Date, nullable=True)
    sprint_qualifying_time = Column(Time, nullable=True)

    # Results, filled in by the data sync once the race is over
    first_place_driver_id = Column(String, nullable=True)
    second_place_driver_id = Column(String, nullable=True)
    third_place_driver_id = Column(String, nullable=True)
    fastest_lap_driver_id = Column(String, nullable=True)
    driver_of_the_day_id = Column(String, nullable=True)

    race_completed = Column(Boolean, nullable=False, default=False)

    predictions = relationship("Prediction", back_populates="race", cascade="all, delete-orphan")

class SprintRace(Base):
    __tablename__ = "sprint_races"
    __table_args__ = (UniqueConstraint("season", "round", name="unique_sprint_races_season_round"),)
    id = Column(String, primary_key=True)           # "{season}-{round}-sprint"
    season = Column(Integer, nullable=False)
    round = Column(Integer, nullable=False)
    race_name = Column(String, nullable=False)
    circuit_id = Column(String, nullable=False)
    circuit_name = Column(String, nullable=False)
    country = Column(String, nullable=False)
    locality = Column(String, nullable=False)

    date = Column(Date, nullable=False)
    time = Column(Time, nullable=False)

    sprint_qualifying_date = Column(Date, nullable=True)
    sprint_qualifying_time = Column(Time, nullable=True)

    first_place_driver_id = Column(String, nullable=True)
    second_place_driver_id = Column(String, nullable=True)
    third_place_driver_id = Column(String, nullable=True)

    sprint_completed = Column(Boolean, nullable=False, default=False)

    sprint_predictions = relationship("SprintPrediction", back_populates="sprint_race", cascade="all, delete-orphan")


# Register the prediction/cache models so string relationships resolve
import paddock.models.predictions  # noqa: E402,F401
import paddock.models.cache  # noqa: E402,F401

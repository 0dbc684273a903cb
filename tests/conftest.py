from datetime import date, time, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from paddock.core.security import create_access_token
from paddock.db.base import Base
from paddock.db.session import get_db
from paddock.main import app
from paddock.models.f1 import Constructor, Driver, Race, SprintRace
from paddock.models.predictions import Prediction, User
import paddock.models.f1  # noqa: F401  registers every table


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.drop_all(bind=engine)
    engine.dispose()

@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()

@pytest.fixture()
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


# -----------------------
# Builders
# -----------------------
def make_user(db, name="Alice", facebook_id=None, is_admin=False) -> User:
    user = User(
        facebook_id=facebook_id or f"fb-{name.lower()}",
        name=name,
        email=f"{name.lower()}@example.com",
        is_admin=is_admin,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user

def make_race(db, season=2024, round_no=1, race_date=None, race_time=time(14, 0), **fields) -> Race:
    race = Race(
        id=f"{season}-{round_no}",
        season=season,
        round=round_no,
        race_name=fields.pop("race_name", f"Grand Prix {round_no}"),
        circuit_id=fields.pop("circuit_id", f"circuit_{round_no}"),
        circuit_name=fields.pop("circuit_name", f"Circuit {round_no}"),
        country=fields.pop("country", "Testland"),
        locality=fields.pop("locality", "Testville"),
        date=race_date or date(season, 3, 1) + timedelta(weeks=round_no),
        time=race_time,
        race_completed=fields.pop("race_completed", False),
        **fields,
    )
    db.add(race)
    db.commit()
    db.refresh(race)
    return race

def make_sprint_race(db, season=2024, round_no=1, race_date=None, race_time=time(10, 0), **fields) -> SprintRace:
    sprint_race = SprintRace(
        id=f"{season}-{round_no}-sprint",
        season=season,
        round=round_no,
        race_name=f"Grand Prix {round_no} Sprint",
        circuit_id=f"circuit_{round_no}",
        circuit_name=f"Circuit {round_no}",
        country="Testland",
        locality="Testville",
        date=race_date or date(season, 3, 1) + timedelta(weeks=round_no),
        time=race_time,
        sprint_completed=fields.pop("sprint_completed", False),
        **fields,
    )
    db.add(sprint_race)
    db.commit()
    db.refresh(sprint_race)
    return sprint_race

def make_driver(db, driver_id, given, family, code="", number=None, constructor=None) -> Driver:
    driver = Driver(
        id=driver_id,
        code=code,
        permanent_number=number,
        given_name=given,
        family_name=family,
        date_of_birth="",
        nationality="",
        url="",
        constructor=constructor,
    )
    db.add(driver)
    db.commit()
    return driver

def make_constructor(db, constructor_id, name) -> Constructor:
    team = Constructor(id=constructor_id, name=name, nationality="", url="")
    db.add(team)
    db.commit()
    return team

def make_prediction(db, user, race, score=None, **picks) -> Prediction:
    prediction = Prediction(user_id=user.id, race_id=race.id, score=score, **picks)
    db.add(prediction)
    db.commit()
    return prediction

def auth_header(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user)}"}

PODIUM = {
    "first_place_driver_id": "max_verstappen",
    "second_place_driver_id": "norris",
    "third_place_driver_id": "leclerc",
}
FULL_RESULT = {**PODIUM, "fastest_lap_driver_id": "hamilton", "driver_of_the_day_id": "alonso"}

import threading
import time as time_module
from datetime import date, time

import pytest
import requests

from paddock.models.f1 import Driver, Race, SprintRace
from paddock.services import jolpica

from conftest import make_constructor, make_driver, make_race


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload or {}

    def json(self):
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error", response=self)

class FakeSession:
    def __init__(self, responses):
        self.headers = {}
        self.responses = list(responses)
        self.calls = []

    def get(self, url, timeout=None):
        self.calls.append(url)
        return self.responses.pop(0)

class FakeClient:
    """Serves MRData payloads by path."""

    def __init__(self, payloads):
        self.payloads = payloads
        self.paths = []

    def get_json(self, path):
        self.paths.append(path)
        if path not in self.payloads:
            raise requests.HTTPError(f"404 for {path}")
        return self.payloads[path]


def _client(responses, sleeps, now=None):
    clock = now or [0.0]
    return jolpica.JolpicaClient(
        base_url="https://example.test/f1",
        requests_per_second=2,
        max_retries=3,
        cache_hours=24,
        session=FakeSession(responses),
        sleep=sleeps.append,
        clock=lambda: clock[0],
    )

def _result(driver_id, fastest_rank=None):
    row = {"Driver": {"driverId": driver_id}}
    if fastest_rank is not None:
        row["FastestLap"] = {"rank": str(fastest_rank)}
    return row


# -----------------------
# HTTP client
# -----------------------
def test_requests_are_spaced_by_rate_limit():
    sleeps = []
    client = _client([FakeResponse(payload={"a": 1}), FakeResponse(payload={"b": 2})], sleeps)

    client.get_json("2024.json")
    client.get_json("2024/drivers.json")

    assert sleeps == [pytest.approx(0.5)]

def test_429_is_retried_with_exponential_backoff():
    sleeps = []
    client = _client([FakeResponse(429), FakeResponse(429), FakeResponse(payload={"ok": True})], sleeps)

    assert client.get_json("2024.json") == {"ok": True}
    assert sleeps == [2, 4]

def test_429_gives_up_after_max_retries():
    sleeps = []
    client = _client([FakeResponse(429)] * 4, sleeps)

    with pytest.raises(requests.HTTPError):
        client.get_json("2024.json")
    assert sleeps == [2, 4, 8]

def test_other_http_errors_propagate_without_retry():
    sleeps = []
    client = _client([FakeResponse(500)], sleeps)

    with pytest.raises(requests.HTTPError):
        client.get_json("2024.json")
    assert sleeps == []

def test_responses_are_cached_until_expiry():
    sleeps = []
    now = [0.0]
    client = _client([FakeResponse(payload={"v": 1}), FakeResponse(payload={"v": 2})], sleeps, now)

    assert client.get_json("2024.json") == {"v": 1}
    assert client.get_json("2024.json") == {"v": 1}
    assert len(client.session.calls) == 1

    now[0] = 25 * 3600
    assert client.clear_expired() == 1
    assert client.get_json("2024.json") == {"v": 2}


# -----------------------
# Imports
# -----------------------
def test_fetch_current_season_races_imports_calendar(db):
    payload = {"MRData": {"RaceTable": {"Races": [{
        "round": "1",
        "raceName": "Bahrain Grand Prix",
        "date": "2024-03-02",
        "time": "15:00:00Z",
        "Circuit": {
            "circuitId": "bahrain",
            "circuitName": "Bahrain International Circuit",
            "Location": {"locality": "Sakhir", "country": "Bahrain"},
        },
    }]}}}
    client = FakeClient({"2024.json": payload})

    assert jolpica.fetch_current_season_races(db, client, 2024) == 1

    race = db.get(Race, "2024-1")
    assert race.circuit_id == "bahrain"
    assert race.date == date(2024, 3, 2)
    assert race.time == time(15, 0)
    assert race.race_completed is False

def test_fetch_current_season_races_skips_known_season(db):
    make_race(db, season=2024, round_no=1)
    client = FakeClient({"2024/1.json": {"MRData": {"RaceTable": {"Races": []}}}})

    assert jolpica.fetch_current_season_races(db, client, 2024) == 0
    assert "2024.json" not in client.paths

def test_weekend_schedule_marks_sprint_weekend(db):
    make_race(db, season=2024, round_no=5)
    payload = {"MRData": {"RaceTable": {"Races": [{
        "FirstPractice": {"date": "2024-04-19", "time": "03:30:00Z"},
        "Qualifying": {"date": "2024-04-20", "time": "07:00:00Z"},
        "Sprint": {"date": "2024-04-20", "time": "03:00:00Z"},
        "SprintQualifying": {"date": "2024-04-19", "time": "07:30:00Z"},
    }]}}}
    client = FakeClient({"2024/5.json": payload})

    assert jolpica.fetch_weekend_schedules(db, client, 2024) == 1
    race = db.get(Race, "2024-5")
    assert race.is_sprint_weekend is True
    assert race.sprint_time == time(3, 0)
    assert race.practice2_date is None

def test_fetch_sprint_races_creates_rows_for_sprint_weekends(db):
    make_race(db, season=2024, round_no=5, is_sprint_weekend=True,
              sprint_date=date(2024, 4, 20), sprint_time=time(3, 0))
    client = FakeClient({"2024/5/sprint.json": {"MRData": {"SprintTable": {"Sprints": [{"round": "5"}]}}}})

    assert jolpica.fetch_sprint_races(db, client, 2024) == 1
    sprint_race = db.get(SprintRace, "2024-5-sprint")
    assert sprint_race.date == date(2024, 4, 20)
    assert sprint_race.race_name == "Grand Prix 5 Sprint"

def test_update_race_results_sets_podium_and_fastest_lap(db):
    race = make_race(db, season=2024, round_no=1)
    results = [
        _result("max_verstappen", 3),
        _result("perez"),
        _result("sainz"),
        _result("leclerc", 1),
    ]
    client = FakeClient({"2024/1/results.json": {"MRData": {"RaceTable": {"Races": [{"Results": results}]}}}})

    assert jolpica.update_race_results(db, client, race.id) is True
    db.refresh(race)
    assert (race.first_place_driver_id, race.second_place_driver_id, race.third_place_driver_id) == (
        "max_verstappen", "perez", "sainz"
    )
    assert race.fastest_lap_driver_id == "leclerc"
    assert race.driver_of_the_day_id is None
    assert race.race_completed is True

def test_update_race_results_needs_three_results(db):
    race = make_race(db, season=2024, round_no=1)
    client = FakeClient({"2024/1/results.json": {"MRData": {"RaceTable": {"Races": [
        {"Results": [_result("max_verstappen"), _result("perez")]}
    ]}}}})

    assert jolpica.update_race_results(db, client, race.id) is False
    db.refresh(race)
    assert race.race_completed is False

def test_update_race_results_skips_completed_race(db):
    race = make_race(db, season=2024, round_no=1, race_completed=True, first_place_driver_id="norris")
    client = FakeClient({})

    assert jolpica.update_race_results(db, client, race.id) is False
    assert client.paths == []

def test_drivers_assigned_from_standings(db):
    payloads = {
        "2024/drivers.json": {"MRData": {"DriverTable": {"Drivers": [
            {"driverId": "norris", "code": "NOR", "permanentNumber": "4",
             "givenName": "Lando", "familyName": "Norris", "nationality": "British"},
        ]}}},
        "2024/constructors.json": {"MRData": {"ConstructorTable": {"Constructors": [
            {"constructorId": "mclaren", "name": "McLaren", "nationality": "British"},
        ]}}},
        "2024/driverStandings.json": {"MRData": {"StandingsTable": {"StandingsLists": [
            {"DriverStandings": [{"Driver": {"driverId": "norris"}, "Constructors": [{"constructorId": "mclaren"}]}]},
        ]}}},
    }

    jolpica.fetch_drivers_for_season(db, FakeClient(payloads), 2024, force_refresh=True)

    driver = db.get(Driver, "norris")
    assert driver.code == "NOR"
    assert driver.constructor.name == "McLaren"

def test_drivers_assigned_per_constructor_before_season_starts(db):
    make_constructor(db, "ferrari", "Ferrari")
    make_driver(db, "hamilton", "Lewis", "Hamilton")
    payloads = {
        "2025/driverStandings.json": {"MRData": {"StandingsTable": {"StandingsLists": []}}},
        "2025/constructors/ferrari/drivers.json": {"MRData": {"DriverTable": {"Drivers": [
            {"driverId": "hamilton"},
        ]}}},
    }

    jolpica.assign_drivers_to_constructors(db, FakeClient(payloads), 2025)

    assert db.get(Driver, "hamilton").constructor_id == "ferrari"

class SlowSession(FakeSession):
    def __init__(self):
        super().__init__([])
        self.active = 0
        self.max_active = 0

    def get(self, url, timeout=None):
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        time_module.sleep(0.02)
        self.active -= 1
        return FakeResponse(payload={"url": url})

def test_concurrent_requests_are_serialized():
    session = SlowSession()
    client = jolpica.JolpicaClient(
        base_url="https://example.test/f1",
        requests_per_second=1000,
        session=session,
        sleep=lambda s: None,
    )
    threads = [threading.Thread(target=client.get_json, args=(f"2024/{i}/results.json",)) for i in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert session.max_active == 1
    assert len(client._cache) == 4

from datetime import timedelta
from urllib.parse import parse_qs, urlparse

import requests

from paddock.api.routes import admin as admin_routes
from paddock.api.routes import images as image_routes
from paddock.core.config import settings
from paddock.models.f1 import Race
from paddock.models.predictions import Prediction, User
from paddock.services import facebook
from paddock.utils.season import today

from conftest import FULL_RESULT, PODIUM, auth_header, make_constructor, make_driver, make_prediction, make_race, make_user


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "UP"}

def test_race_by_id_and_404(client, db):
    make_race(db, season=2024, round_no=3, race_name="Australian Grand Prix")

    r = client.get("/races/2024-3")
    assert r.status_code == 200
    body = r.json()
    for k in ["id", "season", "round", "race_name", "date", "time", "completed", "is_sprint_weekend"]:
        assert k in body
    assert body["race_name"] == "Australian Grand Prix"
    assert body["completed"] is False

    missing = client.get("/races/2024-99")
    assert missing.status_code == 404
    assert missing.json() == {"error": "Race not found with id: 2024-99"}

def test_upcoming_and_next_race(client, db):
    make_race(db, season=2024, round_no=1, race_date=today() - timedelta(days=7))
    soon = make_race(db, season=2024, round_no=2, race_date=today() + timedelta(days=3))
    make_race(db, season=2024, round_no=3, race_date=today() + timedelta(days=10))

    upcoming = client.get("/races/upcoming").json()
    assert [r["round"] for r in upcoming] == [2, 3]
    assert client.get("/races/next").json()["id"] == soon.id

def test_next_race_404_when_season_is_over(client):
    assert client.get("/races/next").status_code == 404

def test_drivers_list_and_lookup_by_code(client, db):
    team = make_constructor(db, "mclaren", "McLaren")
    make_driver(db, "norris", "Lando", "Norris", code="NOR", number="4", constructor=team)

    drivers = client.get("/drivers").json()
    assert drivers[0]["constructor_name"] == "McLaren"
    assert client.get("/drivers/nor").json()["id"] == "norris"
    assert client.get("/drivers/nobody").status_code == 404

def test_active_drivers_before_race_day_use_database(client, db):
    team = make_constructor(db, "ferrari", "Ferrari")
    for i, family in enumerate(["Leclerc", "Sainz", "Bearman"]):
        make_driver(db, family.lower(), "X", family, number=str(10 + i), constructor=team)
    make_race(db, season=2024, round_no=1, race_date=today() + timedelta(days=5))

    active = client.get("/drivers/race/2024-1/active").json()
    # Two per team, lowest number first
    assert [d["id"] for d in active] == ["leclerc", "sainz"]

def test_post_prediction_then_read_it_back(client, db):
    user = make_user(db)
    race = make_race(db, season=2024, round_no=1, race_date=today() + timedelta(days=30))

    r = client.post(f"/predictions/{race.id}", json=PODIUM, headers=auth_header(user))
    assert r.status_code == 200
    assert r.json()["first_place_driver_id"] == "max_verstappen"
    assert r.json()["fastest_lap_driver_id"] == ""

    back = client.get(f"/predictions/user/{user.id}/race/{race.id}", headers=auth_header(user))
    assert back.status_code == 200
    assert back.json()["third_place_driver_id"] == "leclerc"

def test_post_prediction_needs_auth(client, db):
    race = make_race(db, season=2024, round_no=1, race_date=today() + timedelta(days=30))
    r = client.post(f"/predictions/{race.id}", json=PODIUM)
    assert r.status_code == 401

def test_post_prediction_after_start_is_400(client, db):
    user = make_user(db)
    race = make_race(db, season=2024, round_no=1, race_date=today() - timedelta(days=1))

    r = client.post(f"/predictions/{race.id}", json=PODIUM, headers=auth_header(user))
    assert r.status_code == 400
    assert "no longer accepted" in r.json()["error"]

def test_missing_prediction_is_404(client, db):
    user = make_user(db)
    race = make_race(db, season=2024, round_no=1)
    r = client.get(f"/predictions/user/{user.id}/race/{race.id}", headers=auth_header(user))
    assert r.status_code == 404

def test_leaderboard_and_user_score(client, db):
    alice = make_user(db, "Alice")
    bob = make_user(db, "Bob")
    race = make_race(db, season=2024, round_no=1)
    make_prediction(db, alice, race, score=3)
    make_prediction(db, bob, race, score=9)

    board = client.get("/predictions/leaderboard?season=2024").json()
    assert [(e["user_name"], e["total_score"]) for e in board] == [("Bob", 9), ("Alice", 3)]
    assert client.get(f"/predictions/user/{alice.id}/score?season=2024").json() == 3

def test_race_results_route(client, db):
    user = make_user(db)
    race = make_race(db, season=2024, round_no=1, race_completed=True, **FULL_RESULT)
    make_prediction(db, user, race, score=11, **FULL_RESULT)

    results = client.get(f"/predictions/race/{race.id}/results").json()
    assert results[0]["score"] == 11
    assert results[0]["season_position"] == 1
    assert results[0]["previous_season_position"] is None

def test_stats_overview_and_user_comparison(client, db):
    user = make_user(db)
    race = make_race(db, season=2024, round_no=1, race_completed=True, **FULL_RESULT)
    make_driver(db, "max_verstappen", "Max", "Verstappen", code="VER")
    make_prediction(db, user, race, score=9, **PODIUM)

    overview = client.get("/stats/overview").json()
    assert overview["total_predictions"] == 1
    assert overview["completed_races"] == 1
    assert overview["most_predicted_driver"]["driver_code"] == "VER"

    assert client.get("/stats/user-comparison").status_code == 401
    comparison = client.get("/stats/user-comparison", headers=auth_header(user)).json()
    assert comparison["user_stats"][0]["total_score"] == 9

    accuracy = client.get("/stats/prediction-accuracy").json()
    assert accuracy["accuracy_by_type"]["first_place"]["accuracy"] == 100.0
    assert accuracy["accuracy_by_type"]["fastest_lap"]["correct_predictions"] == 0

def test_delete_account_removes_predictions(client, db):
    user = make_user(db)
    race = make_race(db, season=2024, round_no=1)
    make_prediction(db, user, race, **PODIUM)

    r = client.delete("/users/me", headers=auth_header(user))
    assert r.status_code == 200

    db.expire_all()
    assert db.query(User).count() == 0
    assert db.query(Prediction).count() == 0


# -----------------------
# Image proxy
# -----------------------
class FakeImageResponse:
    def __init__(self, status_code=200, content=b"\x89PNG"):
        self.status_code = status_code
        self.content = content

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(str(self.status_code))

class FakeImageSession:
    def __init__(self, response):
        self.response = response

    def get(self, url, timeout=None):
        return self.response

def test_image_proxy_serves_allowed_host(client):
    client.app.dependency_overrides[image_routes.get_http] = lambda: FakeImageSession(FakeImageResponse())
    r = client.get("/images/proxy", params={"src": "https://media.formula1.com/image/verstappen.png"})
    assert r.status_code == 200
    assert r.headers["content-type"] == "image/png"
    assert r.headers["cache-control"] == "public, max-age=86400"
    assert r.content == b"\x89PNG"

def test_image_proxy_rejects_other_hosts(client):
    r = client.get("/images/proxy", params={"src": "https://evil.example.com/a.png"})
    assert r.status_code == 403

def test_image_proxy_upstream_failure_is_502(client):
    client.app.dependency_overrides[image_routes.get_http] = lambda: FakeImageSession(FakeImageResponse(404))
    r = client.get("/images/proxy", params={"src": "https://www.formula1.com/missing.jpg"})
    assert r.status_code == 502


# -----------------------
# Admin
# -----------------------
class FakeSync:
    def check_for_completed_races(self):
        return ["Bahrain Grand Prix"]

def test_process_completed_races(client, db):
    admin = make_user(db, "Admin", is_admin=True)
    client.app.dependency_overrides[admin_routes.get_datasync] = lambda: FakeSync()

    r = client.post("/admin/process-completed-races", headers=auth_header(admin))
    assert r.status_code == 200
    assert r.json()["processed_races"] == 1
    assert r.json()["processed_race_names"] == ["Bahrain Grand Prix"]

def test_driver_of_the_day_rescores_completed_race(client, db):
    admin = make_user(db, "Admin", is_admin=True)
    user = make_user(db, "Alice")
    race = make_race(db, season=2024, round_no=1, race_completed=True,
                     **{**FULL_RESULT, "driver_of_the_day_id": None})
    make_driver(db, "alonso", "Fernando", "Alonso", code="ALO")
    make_prediction(db, user, race, score=10, **FULL_RESULT)

    r = client.put(f"/admin/races/{race.id}/driver-of-the-day", json={"driver_id": "ALO"},
                   headers=auth_header(admin))

    assert r.status_code == 200
    assert r.json()["driver_of_the_day_id"] == "alonso"
    db.expire_all()
    assert db.query(Prediction).one().score == 11

def test_driver_of_the_day_on_race_without_podium_is_saved(client, db):
    admin = make_user(db, "Admin", is_admin=True)
    race = make_race(db, season=2024, round_no=1, race_completed=True)
    make_driver(db, "alonso", "Fernando", "Alonso", code="ALO")

    r = client.put(f"/admin/races/{race.id}/driver-of-the-day", json={"driver_id": "alonso"},
                   headers=auth_header(admin))

    assert r.status_code == 200
    db.expire_all()
    assert db.get(Race, race.id).driver_of_the_day_id == "alonso"


# -----------------------
# Facebook login
# -----------------------
def test_facebook_login_redirects_to_dialog(client):
    r = client.get("/oauth2/authorization/facebook", follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["location"].startswith(settings.facebook_dialog_url)
    assert "state=" in r.headers["location"]

def test_facebook_callback_with_bad_state_fails(client):
    r = client.get("/login/oauth2/code/facebook", params={"code": "abc", "state": "forged"},
                   follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["location"] == "/auth/login-failed"

def _start_login(client):
    r = client.get("/oauth2/authorization/facebook", follow_redirects=False)
    return parse_qs(urlparse(r.headers["location"]).query)["state"][0]

def test_facebook_login_sets_state_cookie(client):
    r = client.get("/oauth2/authorization/facebook", follow_redirects=False)
    cookie = r.headers["set-cookie"]
    assert cookie.startswith(f"{facebook.STATE_COOKIE}=")
    assert "HttpOnly" in cookie

def test_facebook_callback_issues_token(client, db, monkeypatch):
    monkeypatch.setattr(facebook, "exchange_code", lambda code: "fb-access")
    monkeypatch.setattr(facebook, "fetch_profile", lambda token: {"id": "12345", "name": "Kimi"})
    state = _start_login(client)

    r = client.get("/login/oauth2/code/facebook", params={"code": "abc", "state": state},
                   follow_redirects=False)

    assert r.status_code == 302
    assert r.headers["location"].startswith(f"{settings.frontend_url}/#/?token=")
    user = db.query(User).filter_by(facebook_id="12345").one()
    assert user.email == "12345@paddock.local"

def test_facebook_callback_needs_the_browser_that_started_login(client, monkeypatch):
    monkeypatch.setattr(facebook, "exchange_code", lambda code: "fb-access")
    monkeypatch.setattr(facebook, "fetch_profile", lambda token: {"id": "666", "name": "Mallory"})
    # A valid state minted for someone else, with no matching cookie
    state = facebook.make_state(facebook.new_nonce())

    r = client.get("/login/oauth2/code/facebook", params={"code": "abc", "state": state},
                   follow_redirects=False)

    assert r.status_code == 302
    assert r.headers["location"] == "/auth/login-failed"

def test_facebook_state_must_match_cookie_nonce():
    state = facebook.make_state("nonce-a")
    assert facebook.verify_state(state, "nonce-a") is True
    assert facebook.verify_state(state, "nonce-b") is False
    assert facebook.verify_state(state, None) is False

def test_login_failed(client):
    r = client.get("/auth/login-failed")
    assert r.status_code == 401
    assert r.json() == {"error": "Login failed"}

import os
import sys
from datetime import time
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ["APP_ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"

import models  # noqa: E402
import database  # noqa: E402
from app.core.errors import PersistenceError  # noqa: E402
from app.core.security import create_access_token  # noqa: E402
from app.services import schedule_store  # noqa: E402


@pytest.fixture
def client(monkeypatch) -> TestClient:
    sys.modules["models"] = models
    sys.modules["database"] = database

    engine = create_engine(
        "sqlite://",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SessionTesting = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    monkeypatch.setattr(database, "engine", engine)
    monkeypatch.setattr(database, "SessionLocal", SessionTesting)
    models.Base.metadata.create_all(bind=engine)

    from main import app  # noqa: E402

    return TestClient(app)


def _create_user(email: str, role: str) -> str:
    db = database.SessionLocal()
    try:
        user = models.User(email=email, role=role, name=email.split("@")[0])
        db.add(user)
        db.commit()
        db.refresh(user)
        return user.id
    finally:
        db.close()


def _auth(user_id: str, role: str) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user_id, role)}"}


WEEKDAYS = {
    "schedules": [
        {"day_of_week": day, "start_time": "09:00", "end_time": "17:00", "is_active": True} for day in range(1, 6)
    ]
}


def test_schedule_round_trip(client: TestClient):
    specialist_id = _create_user("mentor@example.com", "specialist")
    headers = _auth(specialist_id, "specialist")
    payload = {
        "schedules": [
            {"day_of_week": 1, "start_time": "09:00", "end_time": "17:00", "is_active": True},
            {"day_of_week": 3, "start_time": "12:00", "end_time": "15:00", "is_active": False},
        ]
    }

    put = client.put("/api/my/schedule", json=payload, headers=headers)
    assert put.status_code == 200, put.text

    got = client.get("/api/my/schedule", headers=headers)
    assert got.status_code == 200, got.text
    assert got.json() == {"specialist_id": specialist_id, "schedules": payload["schedules"]}


def test_replacing_schedule_swaps_the_whole_week(client: TestClient):
    specialist_id = _create_user("mentor@example.com", "specialist")
    headers = _auth(specialist_id, "specialist")
    client.put("/api/my/schedule", json=WEEKDAYS, headers=headers)

    replacement = {"schedules": [{"day_of_week": 6, "start_time": "10:00", "end_time": "14:00", "is_active": True}]}
    resp = client.put("/api/my/schedule", json=replacement, headers=headers)

    assert resp.status_code == 200, resp.text
    assert [slot["day_of_week"] for slot in resp.json()["schedules"]] == [6]


def test_duplicate_weekday_is_rejected_and_previous_schedule_kept(client: TestClient):
    specialist_id = _create_user("mentor@example.com", "specialist")
    headers = _auth(specialist_id, "specialist")
    client.put("/api/my/schedule", json=WEEKDAYS, headers=headers)

    duplicate = {
        "schedules": [
            {"day_of_week": 1, "start_time": "10:00", "end_time": "11:00", "is_active": True},
            {"day_of_week": 1, "start_time": "12:00", "end_time": "13:00", "is_active": True},
        ]
    }
    resp = client.put("/api/my/schedule", json=duplicate, headers=headers)
    assert resp.status_code == 400, resp.text
    assert resp.json() == {"detail": "Duplicate day_of_week 1"}

    got = client.get("/api/my/schedule", headers=headers).json()
    assert got["schedules"] == WEEKDAYS["schedules"]


def test_storage_failure_is_a_500_and_previous_schedule_kept(client: TestClient, monkeypatch):
    specialist_id = _create_user("mentor@example.com", "specialist")
    headers = _auth(specialist_id, "specialist")
    client.put("/api/my/schedule", json=WEEKDAYS, headers=headers)

    from app.api import schedule as schedule_api

    real_to_entries = schedule_api._to_entries
    # Let a duplicate row through so the unique constraint fails at commit.
    monkeypatch.setattr(schedule_api, "_to_entries", lambda payload: real_to_entries(payload) * 2)

    resp = client.put("/api/my/schedule", json=WEEKDAYS, headers=headers)
    assert resp.status_code == 500, resp.text
    assert resp.json()["detail"] == "Server error"

    got = client.get("/api/my/schedule", headers=headers).json()
    assert got["schedules"] == WEEKDAYS["schedules"]


def test_replace_weekly_schedule_rolls_back_on_storage_error(client: TestClient):
    specialist_id = _create_user("mentor@example.com", "specialist")
    monday = schedule_store.ScheduleEntry(day_of_week=1, start_time=time(9), end_time=time(12))

    with database.SessionLocal() as db:
        schedule_store.replace_weekly_schedule(db, specialist_id, [monday])
        with pytest.raises(PersistenceError):
            schedule_store.replace_weekly_schedule(db, specialist_id, [monday, monday])

    with database.SessionLocal() as db:
        rows = schedule_store.get_weekly_schedule(db, specialist_id)
        assert [(r.day_of_week, r.start_time, r.end_time) for r in rows] == [(1, time(9), time(12))]


@pytest.mark.parametrize(
    "slot",
    [
        {"day_of_week": 1, "start_time": "12:00", "end_time": "09:00"},
        {"day_of_week": 1, "start_time": "10:00", "end_time": "10:00"},
        {"day_of_week": 1, "start_time": "24:00", "end_time": "25:00"},
    ],
)
def test_invalid_window_is_rejected(client: TestClient, slot):
    specialist_id = _create_user("mentor@example.com", "specialist")

    resp = client.put("/api/my/schedule", json={"schedules": [slot]}, headers=_auth(specialist_id, "specialist"))

    assert resp.status_code == 400, resp.text


def test_out_of_range_weekday_is_rejected(client: TestClient):
    specialist_id = _create_user("mentor@example.com", "specialist")
    slot = {"day_of_week": 7, "start_time": "09:00", "end_time": "10:00"}

    resp = client.put("/api/my/schedule", json={"schedules": [slot]}, headers=_auth(specialist_id, "specialist"))

    assert resp.status_code == 400, resp.text
    assert resp.json() == {"detail": "Invalid schedules.0.day_of_week"}


def test_schedule_requires_authentication(client: TestClient):
    assert client.get("/api/my/schedule").status_code == 401
    bad = client.get("/api/my/schedule", headers={"Authorization": "Bearer not-a-token"})
    assert bad.status_code == 403


def test_admin_manages_specialist_schedule(client: TestClient):
    admin_id = _create_user("admin@example.com", "admin")
    specialist_id = _create_user("mentor@example.com", "specialist")
    headers = _auth(admin_id, "admin")

    put = client.put(f"/api/admin/specialists/{specialist_id}/schedule", json=WEEKDAYS, headers=headers)
    assert put.status_code == 200, put.text

    got = client.get(f"/api/admin/specialists/{specialist_id}/schedule", headers=headers)
    assert got.json()["schedules"] == WEEKDAYS["schedules"]

    # The new template drives availability straight away.
    slots = client.get(f"/api/specialists/{specialist_id}/month-availability", params={"year": 2027, "month": 3})
    assert "2027-03-01" not in slots.json()
    assert "2027-03-06" in slots.json()


def test_specialist_cannot_use_admin_schedule_routes(client: TestClient):
    specialist_id = _create_user("mentor@example.com", "specialist")
    other_id = _create_user("other@example.com", "specialist")

    resp = client.put(
        f"/api/admin/specialists/{other_id}/schedule",
        json=WEEKDAYS,
        headers=_auth(specialist_id, "specialist"),
    )

    assert resp.status_code == 403, resp.text


def test_admin_schedule_for_unknown_specialist_is_404(client: TestClient):
    admin_id = _create_user("admin@example.com", "admin")

    resp = client.put("/api/admin/specialists/missing/schedule", json=WEEKDAYS, headers=_auth(admin_id, "admin"))

    assert resp.status_code == 404, resp.text

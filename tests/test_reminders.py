import os
import sys
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ["APP_ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"

import models  # noqa: E402
from app.services.reminders import (  # noqa: E402
    ReminderScheduler,
    build_daily_summary,
    send_pre_call_reminders,
)

CALL = datetime(2027, 3, 5, 11, 0)  # 14:00 MSK


class FakeNotifier:
    def __init__(self):
        self.direct = []
        self.admin = []
        self.admin_event = threading.Event()

    def notify(self, chat_id, text):
        self.direct.append((chat_id, text))
        return True

    def notify_all_admins(self, text):
        self.admin.append(text)
        self.admin_event.set()
        return 1


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    models.Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, autocommit=False, autoflush=False)
    engine.dispose()


@pytest.fixture
def specialist_id(session_factory) -> str:
    with session_factory() as db:
        user = models.User(email="jane@example.com", role="specialist", name="Jane Doe", telegram_chat_id="555")
        db.add(user)
        db.commit()
        return user.id


def _add_booking(session_factory, specialist_id, start, status="confirmed", name="Ann"):
    with session_factory() as db:
        booking = models.Booking(
            specialist_id=specialist_id,
            client_name=name,
            client_contact="@ann",
            start_time=start,
            end_time=start + timedelta(hours=1),
            active_start_time=None if status == "cancelled" else start,
            status=status,
        )
        db.add(booking)
        db.commit()
        return booking.id


def _utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def test_reminder_sent_once_about_an_hour_before(session_factory, specialist_id):
    _add_booking(session_factory, specialist_id, CALL)
    notifier = FakeNotifier()

    with session_factory() as db:
        assert send_pre_call_reminders(db, notifier, _utc(2027, 3, 5, 10, 0)) == 1
    with session_factory() as db:
        assert send_pre_call_reminders(db, notifier, _utc(2027, 3, 5, 10, 5)) == 0

    assert len(notifier.admin) == 1
    assert notifier.direct[0][0] == "555"
    assert "14:00 (МСК)" in notifier.direct[0][1]
    with session_factory() as db:
        assert db.query(models.Booking).one().reminder_sent_at == datetime(2027, 3, 5, 10, 0)


@pytest.mark.parametrize(
    "now",
    [
        _utc(2027, 3, 5, 9, 40),  # 80 minutes ahead
        _utc(2027, 3, 5, 10, 20),  # 40 minutes ahead
    ],
)
def test_reminder_window_bounds(session_factory, specialist_id, now):
    _add_booking(session_factory, specialist_id, CALL)
    notifier = FakeNotifier()

    with session_factory() as db:
        assert send_pre_call_reminders(db, notifier, now) == 0
    assert notifier.admin == []


def test_cancelled_calls_get_no_reminder(session_factory, specialist_id):
    _add_booking(session_factory, specialist_id, CALL, status="cancelled")
    notifier = FakeNotifier()

    with session_factory() as db:
        assert send_pre_call_reminders(db, notifier, _utc(2027, 3, 5, 10, 0)) == 0


def test_daily_summary_lists_todays_confirmed_calls(session_factory, specialist_id):
    _add_booking(session_factory, specialist_id, CALL, name="Ann")
    _add_booking(session_factory, specialist_id, datetime(2027, 3, 5, 7, 0), name="Bob")
    _add_booking(session_factory, specialist_id, datetime(2027, 3, 5, 8, 0), status="cancelled", name="Gone")
    # 22:00 MSK on the previous day
    _add_booking(session_factory, specialist_id, datetime(2027, 3, 4, 19, 0), name="Yesterday")

    with session_factory() as db:
        text = build_daily_summary(db, _utc(2027, 3, 5, 6, 0))

    assert "5 марта" in text
    assert text.index("Bob") < text.index("Ann")
    assert "<b>10:00</b>" in text
    assert "Gone" not in text
    assert "Yesterday" not in text


def test_daily_summary_without_calls(session_factory, specialist_id):
    with session_factory() as db:
        assert build_daily_summary(db, _utc(2027, 3, 5, 6, 0)) == "На сегодня созвонов нет."


def test_summary_goes_out_once_per_moscow_day(session_factory, specialist_id):
    notifier = FakeNotifier()
    scheduler = ReminderScheduler(notifier, session_factory=session_factory, summary_hour=9)

    scheduler.run_pending(_utc(2027, 3, 5, 5, 59))  # 08:59 MSK
    assert notifier.admin == []

    scheduler.run_pending(_utc(2027, 3, 5, 6, 0))
    scheduler.run_pending(_utc(2027, 3, 5, 12, 0))
    assert len(notifier.admin) == 1

    scheduler.run_pending(_utc(2027, 3, 6, 6, 30))
    assert len(notifier.admin) == 2


def test_scheduler_also_sends_pre_call_reminders(session_factory, specialist_id):
    _add_booking(session_factory, specialist_id, CALL)
    notifier = FakeNotifier()
    scheduler = ReminderScheduler(notifier, session_factory=session_factory, summary_hour=23)

    scheduler.run_pending(_utc(2027, 3, 5, 10, 0))

    assert len(notifier.admin) == 1
    assert "Напоминание" in notifier.admin[0]


def test_scheduler_thread_starts_and_stops(session_factory, specialist_id):
    notifier = FakeNotifier()
    scheduler = ReminderScheduler(
        notifier,
        session_factory=session_factory,
        interval_seconds=3600,
        clock=lambda: _utc(2027, 3, 5, 7, 0),
    )

    scheduler.start()
    try:
        assert notifier.admin_event.wait(5)
        assert scheduler.running
    finally:
        scheduler.stop()

    assert not scheduler.running
    assert len(notifier.admin) == 1

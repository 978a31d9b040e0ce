from __future__ import annotations

import logging
import threading
from datetime import date, datetime, timedelta
from typing import Callable, List, Optional

from sqlalchemy.orm import Session, joinedload

import database
from app.models import Booking, BookingStatus
from app.services import msk_time
from app.services.notifications import NO_TOPIC, TelegramNotifier

logger = logging.getLogger(__name__)

REMINDER_LEAD_MIN = timedelta(minutes=45)
REMINDER_LEAD_MAX = timedelta(minutes=75)


def confirmed_bookings_between(db: Session, start: datetime, end: datetime) -> List[Booking]:
    return (
        db.query(Booking)
        .options(joinedload(Booking.specialist))
        .filter(
            Booking.start_time >= msk_time.as_naive_utc(start),
            Booking.start_time < msk_time.as_naive_utc(end),
            Booking.status == BookingStatus.CONFIRMED.value,
        )
        .order_by(Booking.start_time.asc())
        .all()
    )


def build_daily_summary(db: Session, now: datetime) -> str:
    today = msk_time.moscow_today(now)
    start, end = msk_time.moscow_day_bounds(today)
    bookings = confirmed_bookings_between(db, start, end)
    if not bookings:
        return "На сегодня созвонов нет."

    lines = [f"📅 <b>Сводка созвонов на сегодня ({msk_time.format_moscow_day(today)}):</b>", ""]
    for booking in bookings:
        specialist_name = booking.specialist.name if booking.specialist else "Unknown"
        lines.append(
            f"• <b>{msk_time.format_moscow_time(booking.start_time)}</b> (МСК): "
            f"{booking.client_name} (Ментор: {specialist_name})"
        )
    return "\n".join(lines)


def reminder_message(booking: Booking) -> str:
    specialist_name = booking.specialist.name if booking.specialist else "Unknown"
    return (
        "⏰ <b>Напоминание:</b> Созвон через час!\n"
        f"<b>Время:</b> {msk_time.format_moscow_time(booking.start_time)} (МСК)\n"
        f"<b>Клиент:</b> {booking.client_name}\n"
        f"<b>Ментор:</b> {specialist_name}\n"
        f"<b>Тема:</b> {booking.notes or NO_TOPIC}"
    )


def send_pre_call_reminders(db: Session, notifier: TelegramNotifier, now: datetime) -> int:
    """Remind about confirmed calls starting in about an hour, once per booking."""
    now_utc = msk_time.as_utc(now)
    due = [
        booking
        for booking in confirmed_bookings_between(db, now_utc + REMINDER_LEAD_MIN, now_utc + REMINDER_LEAD_MAX)
        if booking.reminder_sent_at is None
    ]
    for booking in due:
        text = reminder_message(booking)
        notifier.notify_all_admins(text)
        if booking.specialist and booking.specialist.telegram_chat_id:
            notifier.notify(booking.specialist.telegram_chat_id, text)
        booking.reminder_sent_at = msk_time.as_naive_utc(now_utc)
    if due:
        db.commit()
    return len(due)


class ReminderScheduler:
    """Runs the daily admin summary and pre-call reminders on a background thread."""

    def __init__(
        self,
        notifier: TelegramNotifier,
        session_factory: Optional[Callable[[], Session]] = None,
        interval_seconds: int = 60,
        summary_hour: int = 9,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.notifier = notifier
        self.interval_seconds = interval_seconds
        self.summary_hour = summary_hour
        self._session_factory = session_factory
        self._clock = clock or msk_time.utcnow
        self._last_summary_date: date | None = None
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _session(self) -> Session:
        factory = self._session_factory or database.SessionLocal
        return factory()

    def run_pending(self, now: datetime | None = None) -> None:
        now = now or self._clock()
        local_now = msk_time.to_moscow(now)

        if local_now.hour >= self.summary_hour and self._last_summary_date != local_now.date():
            try:
                with self._session() as db:
                    summary = build_daily_summary(db, now)
                self.notifier.notify_all_admins(summary)
                self._last_summary_date = local_now.date()
            except Exception as e:
                logger.error("Daily summary job failed (%s: %s)", type(e).__name__, e)

        try:
            with self._session() as db:
                sent = send_pre_call_reminders(db, self.notifier, now)
            if sent:
                logger.info("Sent %s pre-call reminder(s)", sent)
        except Exception as e:
            logger.error("Pre-call reminder job failed (%s: %s)", type(e).__name__, e)

    def _loop(self) -> None:
        logger.info("Reminder scheduler started. Interval=%ss", self.interval_seconds)
        while not self._stop_event.is_set():
            self.run_pending()
            self._stop_event.wait(self.interval_seconds)
        logger.info("Reminder scheduler stopped")

    def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, name="reminder-scheduler", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None


__all__ = [
    "REMINDER_LEAD_MIN",
    "REMINDER_LEAD_MAX",
    "confirmed_bookings_between",
    "build_daily_summary",
    "reminder_message",
    "send_pre_call_reminders",
    "ReminderScheduler",
]

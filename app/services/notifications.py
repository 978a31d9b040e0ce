from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional

import httpx
from sqlalchemy.orm import Session

import database
from app.core.config import Settings, telegram_configured
from app.models import Booking, User, UserRole
from app.services.msk_time import format_moscow_datetime

logger = logging.getLogger(__name__)

ADMIN_PREFIX = "<b>[ADMIN]</b> "
NO_TOPIC = "не указана"


class TelegramNotifier:
    """Sends HTML messages through the Telegram Bot API.

    Delivery is best-effort: every failure is logged and dropped, nothing is
    raised to the caller.
    """

    def __init__(
        self,
        bot_token: str | None,
        admin_chat_id: str | None = None,
        session_factory: Optional[Callable[[], Session]] = None,
        timeout_seconds: float = 20.0,
    ) -> None:
        self.bot_token = bot_token
        self.admin_chat_id = admin_chat_id if admin_chat_id and admin_chat_id != "YOUR_CHAT_ID_HERE" else None
        self.timeout_seconds = timeout_seconds
        self._session_factory = session_factory
        self._client: httpx.Client | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "TelegramNotifier":
        token = settings.telegram_bot_token if telegram_configured(settings) else None
        return cls(bot_token=token, admin_chat_id=settings.admin_telegram_chat_id)

    @property
    def enabled(self) -> bool:
        return bool(self.bot_token)

    def start(self) -> None:
        if not self.enabled:
            logger.info("Telegram bot token not provided, notifications are disabled")
            return
        if self._client is None:
            self._client = httpx.Client(timeout=self.timeout_seconds)
            logger.info("Telegram notifier started")

    def stop(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
            logger.info("Telegram notifier stopped")

    def _call(self, method: str, payload: dict, extra_timeout: float = 0.0) -> dict:
        url = f"https://api.telegram.org/bot{self.bot_token}/{method}"
        timeout = self.timeout_seconds + extra_timeout
        if self._client is not None:
            r = self._client.post(url, json=payload, timeout=timeout)
        else:
            with httpx.Client(timeout=timeout) as client:
                r = client.post(url, json=payload)
        r.raise_for_status()
        data = r.json()
        if not data.get("ok", False):
            raise RuntimeError(f"Telegram API error: {data}")
        return data

    def _post(self, chat_id: str, text: str) -> None:
        payload = {
            "chat_id": chat_id,
            "text": text,
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }
        self._call("sendMessage", payload)

    def get_updates(self, offset: int | None = None, timeout: int = 0) -> List[dict]:
        """Long-poll the bot's incoming messages. Errors propagate to the poller."""
        if not self.enabled:
            return []
        payload: dict = {"timeout": timeout, "allowed_updates": ["message"]}
        if offset is not None:
            payload["offset"] = offset
        return list(self._call("getUpdates", payload, extra_timeout=timeout).get("result", []))

    def notify(self, chat_id: str | int | None, text: str) -> bool:
        if not self.enabled or not chat_id:
            return False
        try:
            self._post(str(chat_id), text)
        except Exception as e:
            logger.warning("Failed to send Telegram notification to chat_id=%s (%s: %s)", chat_id, type(e).__name__, e)
            return False
        return True

    def admin_chat_ids(self) -> List[str]:
        chat_ids: List[str] = []
        if self.admin_chat_id:
            chat_ids.append(str(self.admin_chat_id))

        factory = self._session_factory or database.SessionLocal
        try:
            with factory() as db:
                rows = (
                    db.query(User.telegram_chat_id)
                    .filter(
                        User.role == UserRole.ADMIN.value,
                        User.telegram_chat_id.isnot(None),
                        User.deleted_at.is_(None),
                    )
                    .all()
                )
        except Exception as e:
            logger.warning("Failed to load admin chat ids (%s: %s)", type(e).__name__, e)
            rows = []

        for (chat_id,) in rows:
            if chat_id and str(chat_id) not in chat_ids:
                chat_ids.append(str(chat_id))
        return chat_ids

    def notify_all_admins(self, text: str) -> int:
        if not self.enabled:
            return 0
        sent = 0
        for chat_id in self.admin_chat_ids():
            if self.notify(chat_id, ADMIN_PREFIX + text):
                sent += 1
        return sent


@dataclass(frozen=True)
class BookingNotice:
    """Plain snapshot of a booking, safe to use after its session is closed."""

    booking_id: str
    start_time: datetime
    client_name: str
    notes: str | None
    specialist_name: str | None
    specialist_chat_id: str | None

    @classmethod
    def from_booking(cls, booking: Booking, specialist: User | None) -> "BookingNotice":
        return cls(
            booking_id=booking.id,
            start_time=booking.start_time,
            client_name=booking.client_name,
            notes=booking.notes,
            specialist_name=specialist.name if specialist else None,
            specialist_chat_id=specialist.telegram_chat_id if specialist else None,
        )


def specialist_booking_message(notice: BookingNotice) -> str:
    return (
        "🔔 <b>Новый созвон!</b>\n\n"
        f"📅 <b>Дата:</b> {format_moscow_datetime(notice.start_time)} (МСК)\n"
        f"👤 <b>Клиент:</b> {notice.client_name}\n"
        f"📝 <b>Тема:</b> {notice.notes or NO_TOPIC}"
    )


def admin_booking_message(notice: BookingNotice) -> str:
    return (
        "📌 <b>Новая запись</b>\n\n"
        f"<b>Ментор:</b> {notice.specialist_name or 'Unknown'}\n"
        f"<b>Дата:</b> {format_moscow_datetime(notice.start_time)} (МСК)\n"
        f"<b>Клиент:</b> {notice.client_name}\n"
        f"<b>Тема:</b> {notice.notes or NO_TOPIC}"
    )


def notify_new_booking(notifier: TelegramNotifier, notice: BookingNotice) -> None:
    """Runs after the booking is committed; never raises."""
    try:
        if notice.specialist_chat_id:
            notifier.notify(notice.specialist_chat_id, specialist_booking_message(notice))
        notifier.notify_all_admins(admin_booking_message(notice))
    except Exception:
        logger.warning("Failed to dispatch notifications for booking %s", notice.booking_id, exc_info=True)


__all__ = [
    "TelegramNotifier",
    "BookingNotice",
    "specialist_booking_message",
    "admin_booking_message",
    "notify_new_booking",
]

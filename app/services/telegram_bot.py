"""Incoming bot messages: ``/start <code>`` links a chat to a user account."""
from __future__ import annotations

import html
import logging
import threading
from typing import Callable, Optional

from sqlalchemy.orm import Session

import database
from app.core.errors import PersistenceError
from app.services import accounts
from app.services.notifications import TelegramNotifier

logger = logging.getLogger(__name__)

START_HINT = "Привет! Чтобы привязать свой аккаунт, напишите /start <ваш_код_из_панели>."
UNKNOWN_CODE = "Неверный код. Пожалуйста, проверьте его в личном кабинете."
LINK_FAILED = "Произошла ошибка при привязке аккаунта."


def parse_start_command(text: str | None) -> Optional[str]:
    """Payload of a ``/start`` command ("" when bare), or None for any other text."""
    parts = (text or "").strip().split(maxsplit=1)
    if not parts:
        return None
    command = parts[0].split("@", 1)[0]
    if command != "/start":
        return None
    return parts[1].strip() if len(parts) > 1 else ""


def linked_message(name: str) -> str:
    return (
        f"Аккаунт привязан! Привет, {html.escape(name)}. "
        "Теперь вы будете получать уведомления о новых созвонах."
    )


def handle_update(db: Session, notifier: TelegramNotifier, update: dict) -> None:
    message = update.get("message") or {}
    chat_id = (message.get("chat") or {}).get("id")
    code = parse_start_command(message.get("text"))
    if chat_id is None or code is None:
        return
    if not code:
        notifier.notify(chat_id, START_HINT)
        return

    try:
        user = accounts.redeem_link_code(db, code, chat_id)
    except PersistenceError:
        notifier.notify(chat_id, LINK_FAILED)
        return
    if user is None:
        notifier.notify(chat_id, UNKNOWN_CODE)
        return
    notifier.notify(chat_id, linked_message(user.name))


class TelegramUpdatePoller:
    """Pulls bot updates with getUpdates on a background thread."""

    def __init__(
        self,
        notifier: TelegramNotifier,
        session_factory: Optional[Callable[[], Session]] = None,
        poll_timeout: int = 10,
        retry_seconds: float = 5.0,
    ) -> None:
        self.notifier = notifier
        self.poll_timeout = poll_timeout
        self.retry_seconds = retry_seconds
        self._session_factory = session_factory
        self._offset: int | None = None
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _session(self) -> Session:
        factory = self._session_factory or database.SessionLocal
        return factory()

    def run_once(self, timeout: int = 0) -> int:
        """Fetch and handle one batch; returns the number of updates consumed."""
        updates = self.notifier.get_updates(offset=self._offset, timeout=timeout)
        for update in updates:
            update_id = update.get("update_id")
            try:
                with self._session() as db:
                    handle_update(db, self.notifier, update)
            except Exception as e:
                logger.error("Failed to handle Telegram update %s (%s: %s)", update_id, type(e).__name__, e)
            if isinstance(update_id, int):
                self._offset = update_id + 1
        return len(updates)

    def _loop(self) -> None:
        logger.info("Telegram update poller started")
        while not self._stop_event.is_set():
            try:
                self.run_once(timeout=self.poll_timeout)
            except Exception as e:
                logger.warning("Telegram getUpdates failed (%s: %s)", type(e).__name__, e)
                self._stop_event.wait(self.retry_seconds)
        logger.info("Telegram update poller stopped")

    def start(self) -> None:
        if self.running or not self.notifier.enabled:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, name="telegram-update-poller", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None


__all__ = [
    "START_HINT",
    "UNKNOWN_CODE",
    "LINK_FAILED",
    "parse_start_command",
    "linked_message",
    "handle_update",
    "TelegramUpdatePoller",
]

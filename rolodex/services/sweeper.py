from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

from rolodex.config import settings
from rolodex.services.notifications import (
    NotificationDispatcher,
    notification_dispatcher,
)
from rolodex.services.otp import OtpManager, otp_manager

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class SweepResult:
    removed_codes: int
    retried_notifications: int


class MaintenanceSweeper:
    """Periodically purges expired codes and retries failed notifications."""

    def __init__(
        self,
        otp: OtpManager,
        dispatcher: NotificationDispatcher,
        interval_seconds: int,
    ) -> None:
        self._otp = otp
        self._dispatcher = dispatcher
        self._interval_seconds = interval_seconds
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self) -> SweepResult:
        removed = self._otp.cleanup()
        retried = self._dispatcher.retry_failed()
        return SweepResult(removed_codes=removed, retried_notifications=retried)

    def start(self) -> None:
        if self._interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive to start the sweeper")
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._loop, name="rolodex-sweeper", daemon=True
        )
        self._thread.start()
        LOGGER.info("Maintenance sweeper started interval=%ss", self._interval_seconds)

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
            LOGGER.info("Maintenance sweeper stopped")

    def _loop(self) -> None:
        while not self._stop.wait(self._interval_seconds):
            try:
                result = self.run_once()
            except Exception:
                LOGGER.exception("Maintenance sweep failed")
                continue
            LOGGER.debug(
                "Maintenance sweep removed=%s retried=%s",
                result.removed_codes,
                result.retried_notifications,
            )


sweeper = MaintenanceSweeper(
    otp_manager, notification_dispatcher, settings.sweep_interval_seconds
)

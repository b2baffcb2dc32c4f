import pytest

from rolodex.models.db_operation import _count_records
from rolodex.schemas.notifications import NotificationStatus, NotificationType
from rolodex.schemas.otp import OtpChannel, OtpPurpose
from rolodex.services.notifications import NotificationDispatcher
from rolodex.services.otp import OtpManager
from rolodex.services.providers import ProviderRegistry
from rolodex.services.sweeper import MaintenanceSweeper


def test_run_once_cleans_codes_and_retries(clock, recording_provider) -> None:
    email = recording_provider(NotificationType.EMAIL, outcomes=[True, False])
    dispatcher = NotificationDispatcher(ProviderRegistry([email]), clock=clock)
    otp = OtpManager(dispatcher, clock=clock)
    otp.issue("a@x.com", OtpChannel.EMAIL, OtpPurpose.EMAIL_VERIFICATION, 5)
    dispatcher.send(NotificationType.EMAIL, "b@x.com", "Reminder", "Call Alice")
    clock.advance(minutes=6)

    result = MaintenanceSweeper(otp, dispatcher, interval_seconds=60).run_once()

    assert result.removed_codes == 1
    assert result.retried_notifications == 1
    assert _count_records("otp") == 0
    assert _count_records("notification", status=NotificationStatus.FAILED) == 0


def test_start_requires_interval(otp, dispatcher) -> None:
    with pytest.raises(ValueError):
        MaintenanceSweeper(otp, dispatcher, interval_seconds=0).start()


def test_start_and_stop(otp, dispatcher) -> None:
    sweeper = MaintenanceSweeper(otp, dispatcher, interval_seconds=3600)

    sweeper.start()
    assert sweeper.running
    sweeper.stop()
    assert not sweeper.running

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from wallet.models import RegisterUserRequest
from wallet.notifications import Notifier
from wallet.service import WalletService

START = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


class FrozenClock:
    """A clock that only moves when a test tells it to."""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class RecordingNotifier(Notifier):
    def __init__(self):
        self.notices = []

    def withdrawal_requested(self, notice):
        self.notices.append(notice)


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def service(clock, notifier):
    return WalletService(clock=clock, notifier=notifier)


@pytest.fixture
def make_user(service):
    def _make_user(username: str, referral_code: str = None):
        return service.users.register(RegisterUserRequest(
            username=username,
            full_name=f"{username.title()} Test",
            address="House 1, Street 2",
            city="Lahore",
            mobile_number="03001234567",
            easypaisa_number="03001234567",
            referral_code=referral_code,
        ))
    return _make_user


@pytest.fixture
def fund(service):
    """Submit and approve a deposit in one step."""
    def _fund(user_id: int, amount: str):
        deposit = service.deposits.submit(user_id, Decimal(amount), "receipt.jpg")
        return service.deposits.approve(deposit.id)
    return _fund

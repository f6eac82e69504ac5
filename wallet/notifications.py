import logging
from decimal import Decimal

from pydantic import BaseModel

from .config import Config

logger = logging.getLogger(__name__)


class WithdrawalNotice(BaseModel):
    withdrawal_id: int
    full_name: str
    address: str
    mobile_number: str
    easypaisa_number: str
    amount: Decimal


class Notifier:
    def withdrawal_requested(self, notice: WithdrawalNotice) -> None:
        raise NotImplementedError


class LogNotifier(Notifier):
    """Writes the admin email to the log instead of sending it."""

    def __init__(self, admin_email: str = Config.ADMIN_EMAIL, currency: str = Config.CURRENCY):
        self.admin_email = admin_email
        self.currency = currency

    def withdrawal_requested(self, notice: WithdrawalNotice) -> None:
        body = (
            "Withdrawal Request Details:\n"
            f"Full Name: {notice.full_name}\n"
            f"Address: {notice.address}\n"
            f"Mobile Number: {notice.mobile_number}\n"
            f"EasyPaisa Account: {notice.easypaisa_number}\n"
            f"Amount (after fee): {self.currency} {notice.amount}\n"
            "Please process this withdrawal within 24-48 hours."
        )
        logger.info(
            f"To: {self.admin_email} | Subject: Withdrawal Request from {notice.full_name}\n{body}"
        )

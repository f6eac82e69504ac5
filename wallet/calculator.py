"""
Ledger Calculator

A user's balance is never stored. Every call re-derives it from the
approved deposits, paid profits, completed withdrawals and paid referral
bonuses currently on record.
"""

from decimal import Decimal

from .models import (
    DepositStatus,
    ProfitStatus,
    ReferralStatus,
    UserStats,
    WithdrawalStatus,
)
from .storage import InMemoryStorage


def _total(rows: list[dict], field: str = "amount") -> Decimal:
    return sum((Decimal(row[field]) for row in rows), Decimal("0"))


class LedgerCalculator:
    def __init__(self, storage: InMemoryStorage):
        self.storage = storage

    def user_stats(self, user_id: int) -> UserStats:
        with self.storage.read():
            total_deposited = _total(
                self.storage.deposits.find(user_id=user_id, status=DepositStatus.APPROVED)
            )
            total_profit = _total(
                self.storage.profits.find(user_id=user_id, status=ProfitStatus.PAID)
            )
            total_withdrawn = _total(
                self.storage.withdrawals.find(user_id=user_id, status=WithdrawalStatus.COMPLETED)
            )
            referrals = self.storage.referrals.find(referrer_id=user_id)

        referral_bonus = _total(
            [r for r in referrals if r["status"] == ReferralStatus.PAID], field="bonus"
        )

        return UserStats(
            total_deposited=total_deposited,
            current_balance=total_deposited + total_profit + referral_bonus - total_withdrawn,
            total_profit=total_profit,
            total_withdrawn=total_withdrawn,
            referral_bonus=referral_bonus,
            referral_count=len(referrals),
        )

    def current_balance(self, user_id: int) -> Decimal:
        return self.user_stats(user_id).current_balance

    def available_balance(self, user_id: int) -> Decimal:
        """Balance minus withdrawals that are requested but not yet settled."""
        with self.storage.read():
            in_flight = _total([
                w for w in self.storage.withdrawals.find(user_id=user_id)
                if w["status"] in (WithdrawalStatus.PENDING, WithdrawalStatus.PROCESSING)
            ])
            return self.current_balance(user_id) - in_flight

"""
Unit Tests for the Ledger Calculator

Tests cover:
1. Empty accounts
2. Which statuses count towards the balance
3. The balance identity across a mixed history
4. Re-derivation after every change
5. Available balance with withdrawals in flight
"""

import pytest
from decimal import Decimal

from wallet.errors import NotFoundError


class TestEmptyAccount:
    """Stats for users with no history."""

    def test_new_user_has_zero_stats(self, service, make_user):
        """A fresh account reports zero everywhere."""
        user = make_user("alice")

        stats = service.user_stats(user.id)

        assert stats.total_deposited == Decimal("0")
        assert stats.current_balance == Decimal("0")
        assert stats.total_profit == Decimal("0")
        assert stats.total_withdrawn == Decimal("0")
        assert stats.referral_bonus == Decimal("0")
        assert stats.referral_count == 0

    def test_unknown_user_fails(self, service):
        """Stats for a missing user raise NotFoundError."""
        with pytest.raises(NotFoundError):
            service.user_stats(999)


class TestStatusFiltering:
    """Only settled records move the balance."""

    def test_pending_deposit_not_counted(self, service, make_user):
        """A submitted but unapproved deposit adds nothing."""
        user = make_user("alice")
        service.deposits.submit(user.id, Decimal("5000"), "receipt.jpg")

        assert service.user_stats(user.id).total_deposited == Decimal("0")

    def test_rejected_deposit_not_counted(self, service, make_user):
        """Rejection leaves every total untouched."""
        user = make_user("alice")
        deposit = service.deposits.submit(user.id, Decimal("5000"), "receipt.jpg")
        service.deposits.reject(deposit.id, "Blurry receipt")

        stats = service.user_stats(user.id)
        assert stats.total_deposited == Decimal("0")
        assert stats.current_balance == Decimal("0")

    def test_approved_deposit_counted(self, service, make_user, fund):
        """Approval is what makes a deposit count."""
        user = make_user("alice")
        fund(user.id, "1000")

        stats = service.user_stats(user.id)
        assert stats.total_deposited == Decimal("1000")
        assert stats.current_balance == Decimal("1000")

    def test_withdrawal_counted_only_when_completed(self, service, make_user, fund):
        """totalWithdrawn moves on completion, not on request or processing."""
        user = make_user("alice")
        fund(user.id, "2000")

        withdrawal = service.withdrawals.request(user.id, Decimal("500"))
        assert service.user_stats(user.id).total_withdrawn == Decimal("0")

        service.withdrawals.process(withdrawal.id)
        assert service.user_stats(user.id).total_withdrawn == Decimal("0")

        service.withdrawals.complete(withdrawal.id)
        stats = service.user_stats(user.id)
        assert stats.total_withdrawn == Decimal("500")
        assert stats.current_balance == Decimal("1500")


class TestBalanceIdentity:
    """current_balance = deposited + profit + referral bonus - withdrawn."""

    def test_balance_derived_from_all_sources(self, service, clock, make_user, fund):
        """Deposits, profits, referrals and withdrawals all feed the balance."""
        alice = make_user("alice")
        make_user("bob", referral_code=alice.referral_code)

        fund(alice.id, "50000")
        clock.advance(days=14)
        service.reconciler.reconcile()

        withdrawal = service.withdrawals.request(alice.id, Decimal("2000"))
        service.withdrawals.process(withdrawal.id)
        service.withdrawals.complete(withdrawal.id)

        stats = service.user_stats(alice.id)
        assert stats.total_deposited == Decimal("50000")
        assert stats.total_profit == Decimal("10000")
        assert stats.referral_bonus == Decimal("100")
        assert stats.total_withdrawn == Decimal("2000")
        # 50000 + 10000 + 100 - 2000
        assert stats.current_balance == Decimal("58100")
        assert stats.current_balance == (
            stats.total_deposited + stats.total_profit
            + stats.referral_bonus - stats.total_withdrawn
        )

    def test_balance_recomputed_after_each_change(self, service, make_user, fund):
        """No cached value: a second approval shows up immediately."""
        user = make_user("alice")
        fund(user.id, "1000")
        assert service.calculator.current_balance(user.id) == Decimal("1000")

        fund(user.id, "700")
        assert service.calculator.current_balance(user.id) == Decimal("1700")

    def test_users_do_not_share_balances(self, service, make_user, fund):
        """Each user's totals come from their own records only."""
        alice = make_user("alice")
        bob = make_user("bob")
        fund(alice.id, "1000")

        assert service.calculator.current_balance(bob.id) == Decimal("0")


class TestAvailableBalance:
    """Requested withdrawals are held back from further requests."""

    def test_in_flight_withdrawals_reduce_available_balance(self, service, make_user, fund):
        user = make_user("alice")
        fund(user.id, "1000")

        first = service.withdrawals.request(user.id, Decimal("400"))
        service.withdrawals.request(user.id, Decimal("400"))
        service.withdrawals.process(first.id)

        assert service.calculator.current_balance(user.id) == Decimal("1000")
        assert service.calculator.available_balance(user.id) == Decimal("200")

    def test_rejected_withdrawal_releases_hold(self, service, make_user, fund):
        user = make_user("alice")
        fund(user.id, "1000")

        withdrawal = service.withdrawals.request(user.id, Decimal("800"))
        service.withdrawals.reject(withdrawal.id, "Wrong account")

        assert service.calculator.available_balance(user.id) == Decimal("1000")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

"""
Unit Tests for the Deposit Lifecycle

Tests cover:
1. Submission and validation
2. Approval, including program activation and rollover
3. Rejection
4. State transition guards
5. Atomicity of approval
6. Plan upgrade requests and admin listings
"""

import pytest
from decimal import Decimal

from wallet.errors import (
    InvalidStateError,
    NotFoundError,
    ReferenceResolutionError,
    ValidationError,
)
from wallet.models import (
    DepositStatus,
    ProgramStatus,
    TransactionStatus,
    TransactionType,
)


class TestSubmitDeposit:
    """Tests for deposit submission."""

    def test_submit_creates_pending_deposit(self, service, make_user):
        """A new deposit is pending with a pending journal entry."""
        user = make_user("alice")

        deposit = service.deposits.submit(user.id, Decimal("5000"), "receipt.jpg")

        assert deposit.status == DepositStatus.PENDING
        assert deposit.amount == Decimal("5000")

        transactions = service.journal.for_user(user.id, type=TransactionType.DEPOSIT)
        assert len(transactions) == 1
        assert transactions[0].status == TransactionStatus.PENDING
        assert transactions[0].reference_id == deposit.id
        assert transactions[0].description == "Deposit pending approval"

    @pytest.mark.parametrize("amount", ["0", "-100"])
    def test_non_positive_amount_rejected(self, service, make_user, amount):
        user = make_user("alice")

        with pytest.raises(ValidationError):
            service.deposits.submit(user.id, Decimal(amount), "receipt.jpg")
        assert service.deposits.list_for_user(user.id) == []

    def test_receipt_required(self, service, make_user):
        user = make_user("alice")

        with pytest.raises(ValidationError):
            service.deposits.submit(user.id, Decimal("5000"), "  ")

    def test_unknown_user_fails(self, service):
        with pytest.raises(NotFoundError):
            service.deposits.submit(42, Decimal("5000"), "receipt.jpg")


class TestApproveDeposit:
    """Tests for deposit approval and program activation."""

    def test_approve_activates_program(self, service, make_user):
        """Approving 50000 starts a 5000/week program."""
        user = make_user("alice")
        deposit = service.deposits.submit(user.id, Decimal("50000"), "receipt.jpg")

        approval = service.deposits.approve(deposit.id)

        assert approval.deposit.status == DepositStatus.APPROVED
        assert approval.deposit.admin_note == "Approved by admin"
        assert approval.reward_program is not None
        assert approval.reward_program.weekly_profit == Decimal("5000")
        assert approval.reward_program.status == ProgramStatus.ACTIVE
        assert approval.reward_program.deposit_id == deposit.id

        transaction = service.journal.for_user(user.id, type=TransactionType.DEPOSIT)[0]
        assert transaction.status == TransactionStatus.COMPLETED
        assert transaction.description == "Deposit approved"

    def test_small_deposit_has_no_program(self, service, make_user):
        """Below the lowest tier the deposit still counts but starts nothing."""
        user = make_user("alice")
        deposit = service.deposits.submit(user.id, Decimal("4000"), "receipt.jpg")

        approval = service.deposits.approve(deposit.id)

        assert approval.reward_program is None
        assert service.programs.active_for_user(user.id) is None
        assert service.user_stats(user.id).total_deposited == Decimal("4000")

    def test_second_deposit_rolls_program_over(self, service, clock, make_user, fund):
        """Only one active program: the newer deposit replaces the old one."""
        user = make_user("alice")
        first = fund(user.id, "5000").reward_program
        clock.advance(days=3)
        second = fund(user.id, "100000").reward_program

        old = service.programs.get(first.id)
        assert old.status == ProgramStatus.ENDED
        assert old.end_date == clock.now

        active = service.programs.list_active()
        assert [p.id for p in active] == [second.id]
        assert second.weekly_profit == Decimal("10000")
        assert second.start_date == clock.now

    def test_approval_marks_youtube_verified_from_prior_approval(self, service, make_user):
        """An approved verification on record is reflected on the user."""
        user = make_user("alice")
        verification = service.verifications.submit(user.id, "shot.png")
        service.verifications.approve(verification.id)
        service.storage.users.update(user.id, youtube_verified=False)

        deposit = service.deposits.submit(user.id, Decimal("1000"), "receipt.jpg")
        service.deposits.approve(deposit.id)

        assert service.users.get(user.id).youtube_verified is True


class TestRejectDeposit:
    """Tests for deposit rejection."""

    def test_reject_pending_deposit(self, service, make_user):
        user = make_user("alice")
        deposit = service.deposits.submit(user.id, Decimal("5000"), "receipt.jpg")

        rejected = service.deposits.reject(deposit.id, "Receipt unreadable")

        assert rejected.status == DepositStatus.REJECTED
        assert rejected.admin_note == "Receipt unreadable"
        transaction = service.journal.for_user(user.id)[0]
        assert transaction.status == TransactionStatus.REJECTED
        assert transaction.description == "Deposit rejected: Receipt unreadable"
        assert service.programs.active_for_user(user.id) is None


class TestDepositTransitions:
    """Approve and reject only apply to pending deposits."""

    def test_cannot_approve_twice(self, service, make_user, fund):
        user = make_user("alice")
        approval = fund(user.id, "5000")

        with pytest.raises(InvalidStateError):
            service.deposits.approve(approval.deposit.id)
        assert len(service.programs.list_for_user(user.id)) == 1

    def test_cannot_reject_approved(self, service, make_user, fund):
        user = make_user("alice")
        approval = fund(user.id, "5000")

        with pytest.raises(InvalidStateError):
            service.deposits.reject(approval.deposit.id)

    def test_cannot_approve_rejected(self, service, make_user):
        user = make_user("alice")
        deposit = service.deposits.submit(user.id, Decimal("5000"), "receipt.jpg")
        service.deposits.reject(deposit.id)

        with pytest.raises(InvalidStateError):
            service.deposits.approve(deposit.id)

    def test_approve_nonexistent_fails(self, service):
        with pytest.raises(NotFoundError):
            service.deposits.approve(999)


class TestApprovalAtomicity:
    """A failed activation leaves no trace of the approval."""

    def test_failed_activation_rolls_back(self, service, make_user, monkeypatch):
        user = make_user("alice")
        deposit = service.deposits.submit(user.id, Decimal("50000"), "receipt.jpg")

        def broken_activate(*args, **kwargs):
            raise ReferenceResolutionError("deposit vanished")

        monkeypatch.setattr(service.programs, "activate", broken_activate)

        with pytest.raises(ReferenceResolutionError):
            service.deposits.approve(deposit.id)

        assert service.deposits.get(deposit.id).status == DepositStatus.PENDING
        assert service.journal.for_user(user.id)[0].status == TransactionStatus.PENDING
        assert service.user_stats(user.id).total_deposited == Decimal("0")

    def test_activation_requires_matching_deposit(self, service, make_user):
        """A program cannot be started for someone else's deposit."""
        alice = make_user("alice")
        bob = make_user("bob")
        deposit = service.deposits.submit(alice.id, Decimal("50000"), "receipt.jpg")

        with pytest.raises(ReferenceResolutionError):
            service.programs.activate(bob.id, deposit.id, Decimal("50000"))
        with pytest.raises(ReferenceResolutionError):
            service.programs.activate(alice.id, 999, Decimal("50000"))


class TestPlanUpgrade:
    """Upgrade requests are pending deposits awaiting a receipt."""

    def test_upgrade_submits_pending_deposit(self, service, make_user):
        user = make_user("alice")

        upgrade = service.deposits.request_plan_upgrade(user.id, Decimal("30000"))

        assert upgrade.weekly_profit == Decimal("3000")
        assert upgrade.deposit.status == DepositStatus.PENDING
        assert upgrade.deposit.receipt_ref == "pending_receipt"

    def test_upgrade_below_lowest_tier_fails(self, service, make_user):
        user = make_user("alice")

        with pytest.raises(ValidationError):
            service.deposits.request_plan_upgrade(user.id, Decimal("4000"))


class TestDepositListing:
    """Admin listing filters before paginating."""

    def test_filter_then_paginate(self, service, make_user):
        user = make_user("alice")
        ids = [
            service.deposits.submit(user.id, Decimal("1000"), f"r{i}.jpg").id
            for i in range(5)
        ]
        service.deposits.reject(ids[0])
        service.deposits.reject(ids[1])

        result = service.deposits.list_all(status="pending", page=1, limit=2)

        assert [d.id for d in result.deposits] == ids[2:4]
        assert result.pagination.total == 3
        assert result.pagination.pages == 2


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

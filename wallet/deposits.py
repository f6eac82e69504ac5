import logging
from decimal import Decimal
from typing import Optional

from .clock import Clock, utcnow
from .errors import InvalidStateError, NotFoundError, ValidationError
from .journal import TransactionJournal
from .models import (
    Deposit,
    DepositApproval,
    DepositListResponse,
    DepositStatus,
    PlanUpgrade,
    TransactionStatus,
    TransactionType,
    VerificationStatus,
)
from .programs import RewardProgramLifecycle
from .storage import InMemoryStorage, page_info, paginate
from .tiers import NOT_ELIGIBLE, weekly_profit_for

logger = logging.getLogger(__name__)

PLAN_UPGRADE_RECEIPT = "pending_receipt"


class DepositLifecycle:
    def __init__(
        self,
        storage: InMemoryStorage,
        journal: TransactionJournal,
        programs: RewardProgramLifecycle,
        clock: Clock = utcnow,
    ):
        self.storage = storage
        self.journal = journal
        self.programs = programs
        self.clock = clock

    def submit(self, user_id: int, amount: Decimal, receipt_ref: str) -> Deposit:
        amount = Decimal(amount)
        if amount <= 0:
            raise ValidationError("Deposit amount must be positive")
        if not receipt_ref or not receipt_ref.strip():
            raise ValidationError("Receipt is required")

        with self.storage.atomic():
            if not self.storage.users.get(user_id):
                raise NotFoundError(f"User {user_id} not found")

            row = self.storage.deposits.create({
                "user_id": user_id,
                "amount": amount,
                "receipt_ref": receipt_ref,
                "status": DepositStatus.PENDING,
                "admin_note": None,
                "created_at": self.clock(),
                "updated_at": None,
            })
            self.journal.record(
                user_id=user_id,
                type=TransactionType.DEPOSIT,
                amount=amount,
                description="Deposit pending approval",
                status=TransactionStatus.PENDING,
                reference_id=row["id"],
            )

        logger.info(f"Deposit {row['id']} of {amount} submitted by user {user_id}")
        return Deposit(**row)

    def approve(self, deposit_id: int, note: Optional[str] = None) -> DepositApproval:
        with self.storage.atomic():
            deposit = self._pending(deposit_id)

            row = self.storage.deposits.update(
                deposit_id,
                status=DepositStatus.APPROVED,
                admin_note=note or "Approved by admin",
                updated_at=self.clock(),
            )
            self.journal.mark(
                deposit.user_id, TransactionType.DEPOSIT, deposit_id,
                TransactionStatus.COMPLETED, "Deposit approved",
            )
            program = self.programs.activate(deposit.user_id, deposit_id, deposit.amount)
            self._backfill_youtube_verified(deposit.user_id)

        logger.info(f"Deposit {deposit_id} approved for user {deposit.user_id}")
        return DepositApproval(deposit=Deposit(**row), reward_program=program)

    def reject(self, deposit_id: int, note: Optional[str] = None) -> Deposit:
        note = note or "Rejected by admin"
        with self.storage.atomic():
            deposit = self._pending(deposit_id)

            row = self.storage.deposits.update(
                deposit_id,
                status=DepositStatus.REJECTED,
                admin_note=note,
                updated_at=self.clock(),
            )
            self.journal.mark(
                deposit.user_id, TransactionType.DEPOSIT, deposit_id,
                TransactionStatus.REJECTED, f"Deposit rejected: {note}",
            )

        logger.info(f"Deposit {deposit_id} rejected: {note}")
        return Deposit(**row)

    def request_plan_upgrade(self, user_id: int, amount: Decimal) -> PlanUpgrade:
        amount = Decimal(amount)
        weekly_profit = weekly_profit_for(amount)
        if amount <= 0 or weekly_profit == NOT_ELIGIBLE:
            raise ValidationError("Invalid deposit amount for a reward plan")

        deposit = self.submit(user_id, amount, PLAN_UPGRADE_RECEIPT)
        return PlanUpgrade(
            message="Reward plan update request submitted",
            required_deposit=amount,
            weekly_profit=weekly_profit,
            deposit=deposit,
        )

    def get(self, deposit_id: int) -> Deposit:
        row = self.storage.deposits.get(deposit_id)
        if not row:
            raise NotFoundError(f"Deposit {deposit_id} not found")
        return Deposit(**row)

    def list_for_user(self, user_id: int) -> list[Deposit]:
        return [Deposit(**r) for r in self.storage.deposits.find(user_id=user_id)]

    def list_all(self, status: Optional[str] = None, page: int = 1, limit: int = 10) -> DepositListResponse:
        rows = self.storage.deposits.list()
        if status and status != "all":
            rows = [r for r in rows if r["status"] == status]
        return DepositListResponse(
            deposits=[Deposit(**r) for r in paginate(rows, page, limit)],
            pagination=page_info(len(rows), page, limit),
        )

    def _pending(self, deposit_id: int) -> Deposit:
        deposit = self.get(deposit_id)
        if deposit.status != DepositStatus.PENDING:
            raise InvalidStateError(f"Cannot change deposit in {deposit.status.value} state")
        return deposit

    def _backfill_youtube_verified(self, user_id: int) -> None:
        user = self.storage.users.get(user_id)
        if not user or user["youtube_verified"]:
            return
        approved = self.storage.youtube_verifications.first(
            user_id=user_id, status=VerificationStatus.APPROVED
        )
        if approved:
            self.storage.users.update(user_id, youtube_verified=True)

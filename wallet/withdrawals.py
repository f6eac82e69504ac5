import logging
from decimal import Decimal
from typing import Optional

from .calculator import LedgerCalculator
from .clock import Clock, utcnow
from .config import Config
from .errors import (
    InsufficientBalanceError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from .journal import TransactionJournal
from .models import (
    TransactionStatus,
    TransactionType,
    Withdrawal,
    WithdrawalListResponse,
    WithdrawalStatus,
)
from .notifications import LogNotifier, Notifier, WithdrawalNotice
from .storage import InMemoryStorage, page_info, paginate

logger = logging.getLogger(__name__)


class WithdrawalLifecycle:
    """
    pending -> processing -> completed, with rejection allowed from pending
    or processing. Rejecting needs no refund: only completed withdrawals are
    subtracted from the derived balance.
    """

    def __init__(
        self,
        storage: InMemoryStorage,
        journal: TransactionJournal,
        calculator: LedgerCalculator,
        notifier: Optional[Notifier] = None,
        clock: Clock = utcnow,
        minimum: Decimal = Config.MIN_WITHDRAWAL,
        fee: Decimal = Config.WITHDRAWAL_FEE,
    ):
        self.storage = storage
        self.journal = journal
        self.calculator = calculator
        self.notifier = notifier or LogNotifier()
        self.clock = clock
        self.minimum = minimum
        self.fee = fee

    def request(self, user_id: int, amount: Decimal) -> Withdrawal:
        amount = Decimal(amount)
        if amount < self.minimum:
            raise ValidationError(f"Minimum withdrawal amount is {Config.CURRENCY} {self.minimum}")

        with self.storage.atomic():
            user = self.storage.users.get(user_id)
            if not user:
                raise NotFoundError(f"User {user_id} not found")

            balance = self.calculator.available_balance(user_id)
            if amount > balance:
                raise InsufficientBalanceError(
                    f"Insufficient balance: requested {amount}, available {balance}"
                )

            row = self.storage.withdrawals.create({
                "user_id": user_id,
                "amount": amount,
                "fee": self.fee,
                "status": WithdrawalStatus.PENDING,
                "processed_at": None,
                "admin_note": None,
                "created_at": self.clock(),
            })
            self.journal.record(
                user_id=user_id,
                type=TransactionType.WITHDRAWAL,
                amount=amount,
                description="Withdrawal request",
                status=TransactionStatus.PENDING,
                reference_id=row["id"],
            )

        withdrawal = Withdrawal(**row)
        logger.info(f"Withdrawal {withdrawal.id} of {amount} requested by user {user_id}")
        self._notify(withdrawal, user)
        return withdrawal

    def process(self, withdrawal_id: int, note: Optional[str] = None) -> Withdrawal:
        return self._transition(
            withdrawal_id,
            allowed=(WithdrawalStatus.PENDING,),
            status=WithdrawalStatus.PROCESSING,
            note=note or "Processing by admin",
            journal_status=TransactionStatus.PROCESSING,
            description="Withdrawal processing",
        )

    def complete(self, withdrawal_id: int, note: Optional[str] = None) -> Withdrawal:
        return self._transition(
            withdrawal_id,
            allowed=(WithdrawalStatus.PROCESSING,),
            status=WithdrawalStatus.COMPLETED,
            note=note or "Completed by admin",
            journal_status=TransactionStatus.COMPLETED,
            description="Withdrawal completed",
            processed_at=self.clock(),
        )

    def reject(self, withdrawal_id: int, note: Optional[str] = None) -> Withdrawal:
        note = note or "Rejected by admin"
        return self._transition(
            withdrawal_id,
            allowed=(WithdrawalStatus.PENDING, WithdrawalStatus.PROCESSING),
            status=WithdrawalStatus.REJECTED,
            note=note,
            journal_status=TransactionStatus.REJECTED,
            description=f"Withdrawal rejected: {note}",
        )

    def get(self, withdrawal_id: int) -> Withdrawal:
        row = self.storage.withdrawals.get(withdrawal_id)
        if not row:
            raise NotFoundError(f"Withdrawal {withdrawal_id} not found")
        return Withdrawal(**row)

    def list_for_user(self, user_id: int) -> list[Withdrawal]:
        return [Withdrawal(**r) for r in self.storage.withdrawals.find(user_id=user_id)]

    def list_all(self, status: Optional[str] = None, page: int = 1, limit: int = 10) -> WithdrawalListResponse:
        rows = self.storage.withdrawals.list()
        if status and status != "all":
            rows = [r for r in rows if r["status"] == status]
        return WithdrawalListResponse(
            withdrawals=[Withdrawal(**r) for r in paginate(rows, page, limit)],
            pagination=page_info(len(rows), page, limit),
        )

    def _transition(
        self,
        withdrawal_id: int,
        allowed: tuple[WithdrawalStatus, ...],
        status: WithdrawalStatus,
        note: str,
        journal_status: TransactionStatus,
        description: str,
        **changes,
    ) -> Withdrawal:
        with self.storage.atomic():
            withdrawal = self.get(withdrawal_id)
            if withdrawal.status not in allowed:
                raise InvalidStateError(
                    f"Cannot move withdrawal from {withdrawal.status.value} to {status.value}"
                )

            row = self.storage.withdrawals.update(
                withdrawal_id, status=status, admin_note=note, **changes
            )
            self.journal.mark(
                withdrawal.user_id, TransactionType.WITHDRAWAL, withdrawal_id,
                journal_status, description,
            )

        logger.info(f"Withdrawal {withdrawal_id} moved to {status.value}")
        return Withdrawal(**row)

    def _notify(self, withdrawal: Withdrawal, user: dict) -> None:
        notice = WithdrawalNotice(
            withdrawal_id=withdrawal.id,
            full_name=user["full_name"],
            address=user["address"],
            mobile_number=user["mobile_number"],
            easypaisa_number=user["easypaisa_number"],
            amount=withdrawal.net_amount,
        )
        try:
            self.notifier.withdrawal_requested(notice)
        except Exception:
            logger.exception(f"Failed to send notification for withdrawal {withdrawal.id}")

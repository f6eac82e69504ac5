from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from .clock import Clock, utcnow
from .errors import ValidationError
from .models import Activity, Transaction, TransactionStatus, TransactionType
from .storage import InMemoryStorage

TITLES = {
    TransactionType.DEPOSIT: "Deposit",
    TransactionType.WITHDRAWAL: "Withdrawal",
    TransactionType.PROFIT: "Weekly Profit",
    TransactionType.REFERRAL: "Referral Bonus",
}

TIME_RANGES = ("30days", "90days", "year", "all")

RECENT_ACTIVITY_LIMIT = 10


class TransactionJournal:
    """Append-only journal of balance-affecting events."""

    def __init__(self, storage: InMemoryStorage, clock: Clock = utcnow):
        self.storage = storage
        self.clock = clock

    def record(
        self,
        user_id: int,
        type: TransactionType,
        amount: Decimal,
        description: str,
        status: TransactionStatus,
        reference_id: Optional[int] = None,
    ) -> Transaction:
        row = self.storage.transactions.create({
            "user_id": user_id,
            "type": type,
            "amount": Decimal(amount),
            "description": description,
            "reference_id": reference_id,
            "status": status,
            "created_at": self.clock(),
        })
        return Transaction(**row)

    def mark(
        self,
        user_id: int,
        type: TransactionType,
        reference_id: int,
        status: TransactionStatus,
        description: Optional[str] = None,
    ) -> Optional[Transaction]:
        """Move the journal entry of a deposit or withdrawal along with it."""
        row = self.storage.transactions.first(
            user_id=user_id, type=type, reference_id=reference_id
        )
        if row is None:
            return None
        changes = {"status": status}
        if description is not None:
            changes["description"] = description
        return Transaction(**self.storage.transactions.update(row["id"], **changes))

    def for_user(
        self,
        user_id: int,
        type: Optional[TransactionType] = None,
        limit: Optional[int] = None,
    ) -> list[Transaction]:
        filters = {"user_id": user_id}
        if type is not None:
            filters["type"] = type
        rows = sorted(
            self.storage.transactions.find(**filters),
            key=lambda r: (r["created_at"], r["id"]),
            reverse=True,
        )
        if limit:
            rows = rows[:limit]
        return [Transaction(**r) for r in rows]

    def history(self, user_id: int, filter: str = "all", time_range: str = "30days") -> list[Activity]:
        try:
            type = None if filter in (None, "", "all") else TransactionType(filter)
        except ValueError:
            raise ValidationError(f"Unknown transaction type: {filter}")
        since = self._range_start(time_range)
        return [
            self._activity(t) for t in self.for_user(user_id, type=type)
            if since is None or t.created_at >= since
        ]

    def activities(self, user_id: int) -> list[Activity]:
        return [self._activity(t) for t in self.for_user(user_id, limit=RECENT_ACTIVITY_LIMIT)]

    def _range_start(self, time_range: str) -> Optional[datetime]:
        now = self.clock()
        if time_range == "30days":
            return now - timedelta(days=30)
        if time_range == "90days":
            return now - timedelta(days=90)
        if time_range == "year":
            return now.replace(month=1, day=1, hour=0, minute=0, second=0, microsecond=0)
        return None

    @staticmethod
    def _activity(transaction: Transaction) -> Activity:
        return Activity(
            id=transaction.id,
            title=TITLES.get(transaction.type, "Transaction"),
            description=transaction.description,
            type=transaction.type,
            amount=transaction.amount,
            date=transaction.created_at,
            status=transaction.status,
        )

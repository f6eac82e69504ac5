import logging
from decimal import Decimal
from typing import Optional

from .clock import Clock, utcnow
from .config import Config
from .errors import InvalidStateError, NotFoundError
from .journal import TransactionJournal
from .models import (
    Referral,
    ReferralStats,
    ReferralStatus,
    ReferredUser,
    TransactionStatus,
    TransactionType,
)
from .storage import InMemoryStorage

logger = logging.getLogger(__name__)


class ReferralResolver:
    def __init__(
        self,
        storage: InMemoryStorage,
        journal: TransactionJournal,
        clock: Clock = utcnow,
        bonus: Decimal = Config.REFERRAL_BONUS,
    ):
        self.storage = storage
        self.journal = journal
        self.clock = clock
        self.bonus = bonus

    def resolve(self, new_user_id: int, code: Optional[str]) -> Optional[Referral]:
        """
        Credit the owner of ``code`` for bringing in ``new_user_id``.

        Blank or unknown codes are ignored. Each user can be referred once.
        """
        if not code or not code.strip():
            return None

        with self.storage.atomic():
            new_user = self.storage.users.get(new_user_id)
            if not new_user:
                raise NotFoundError(f"User {new_user_id} not found")

            referrer = self.storage.users.first(referral_code=code.strip())
            if not referrer or referrer["id"] == new_user_id:
                logger.info(f"Referral code {code!r} did not resolve for user {new_user_id}")
                return None

            if self.storage.referrals.first(referred_id=new_user_id):
                raise InvalidStateError(f"User {new_user_id} has already been referred")

            now = self.clock()
            row = self.storage.referrals.create({
                "referrer_id": referrer["id"],
                "referred_id": new_user_id,
                "bonus": self.bonus,
                "status": ReferralStatus.PAID,
                "created_at": now,
                "paid_at": now,
            })
            self.journal.record(
                user_id=referrer["id"],
                type=TransactionType.REFERRAL,
                amount=self.bonus,
                description=f"Referral bonus for {new_user['username']}",
                status=TransactionStatus.COMPLETED,
                reference_id=row["id"],
            )
            self.storage.users.update(new_user_id, referred_by=referrer["id"])

        logger.info(f"User {referrer['id']} referred user {new_user_id}")
        return Referral(**row)

    def list_for_referrer(self, user_id: int) -> list[ReferredUser]:
        referred = []
        for row in self.storage.referrals.find(referrer_id=user_id):
            user = self.storage.users.get(row["referred_id"]) or {}
            referred.append(ReferredUser(
                id=row["id"],
                full_name=user.get("full_name", "Unknown User"),
                contact=user.get("mobile_number", "Unknown"),
                registered_at=user.get("created_at", row["created_at"]),
                active=bool(user.get("active")),
                bonus=row["bonus"],
                status=row["status"],
            ))
        return referred

    def stats(self, user_id: int) -> ReferralStats:
        referrals = self.storage.referrals.find(referrer_id=user_id)
        now = self.clock()
        this_month = [
            r for r in referrals
            if r["created_at"].year == now.year and r["created_at"].month == now.month
        ]
        return ReferralStats(
            total_referrals=len(referrals),
            total_earnings=sum((r["bonus"] for r in referrals), Decimal("0")),
            monthly_referrals=len(this_month),
            monthly_earnings=sum((r["bonus"] for r in this_month), Decimal("0")),
        )

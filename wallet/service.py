import logging
from decimal import Decimal
from typing import Optional

from .announcements import AnnouncementBoard
from .calculator import LedgerCalculator
from .clock import Clock, utcnow
from .config import Config
from .deposits import DepositLifecycle
from .journal import TransactionJournal
from .models import (
    AdminStats,
    DepositStatus,
    ProgramStatus,
    User,
    UserListResponse,
    UserOverview,
    UserStats,
    UserWithStats,
    WithdrawalStatus,
)
from .notifications import Notifier
from .programs import RewardProgramLifecycle
from .referrals import ReferralResolver
from .schedule import ProfitReconciler, ProfitScheduleGenerator
from .storage import InMemoryStorage, page_info
from .users import UserRegistry
from .verifications import YouTubeVerificationLifecycle
from .withdrawals import WithdrawalLifecycle

logger = logging.getLogger(__name__)


class WalletService:
    """Wires every lifecycle onto one store and one clock."""

    def __init__(
        self,
        storage: Optional[InMemoryStorage] = None,
        clock: Clock = utcnow,
        notifier: Optional[Notifier] = None,
    ):
        self.storage = storage or InMemoryStorage()
        self.clock = clock

        self.journal = TransactionJournal(self.storage, clock)
        self.calculator = LedgerCalculator(self.storage)
        self.programs = RewardProgramLifecycle(self.storage, clock)
        self.schedule = ProfitScheduleGenerator(self.storage, clock)
        self.reconciler = ProfitReconciler(self.storage, self.journal, clock)
        self.deposits = DepositLifecycle(self.storage, self.journal, self.programs, clock)
        self.withdrawals = WithdrawalLifecycle(
            self.storage, self.journal, self.calculator, notifier=notifier, clock=clock
        )
        self.referrals = ReferralResolver(self.storage, self.journal, clock)
        self.users = UserRegistry(self.storage, self.referrals, clock)
        self.verifications = YouTubeVerificationLifecycle(self.storage, clock)
        self.announcements = AnnouncementBoard(self.storage, clock)

    def provision_from_config(self) -> Optional[User]:
        if not Config.ADMIN_USERNAME:
            return None
        return self.users.provision_admin(
            Config.ADMIN_USERNAME,
            full_name=Config.ADMIN_FULL_NAME,
            mobile_number=Config.ADMIN_MOBILE_NUMBER,
        )

    def user_stats(self, user_id: int) -> UserStats:
        self.users.get(user_id)
        return self.calculator.user_stats(user_id)

    def users_with_stats(self, page: int = 1, limit: int = 10) -> UserListResponse:
        users = self.users.list(page, limit)
        return UserListResponse(
            users=[UserWithStats(user=u, stats=self.calculator.user_stats(u.id)) for u in users],
            pagination=page_info(self.users.count(), page, limit),
        )

    def user_overview(self, user_id: int) -> UserOverview:
        user = self.users.get(user_id)
        return UserOverview(
            user=user,
            stats=self.calculator.user_stats(user_id),
            deposits=self.deposits.list_for_user(user_id),
            withdrawals=self.withdrawals.list_for_user(user_id),
            reward_programs=self.programs.list_for_user(user_id),
            transactions=self.journal.for_user(user_id),
            youtube_verifications=self.verifications.list_for_user(user_id),
        )

    def admin_stats(self) -> AdminStats:
        # Full scans; fine for the in-memory store
        with self.storage.read():
            deposits = self.storage.deposits.list()
            withdrawals = self.storage.withdrawals.list()
            active_programs = self.storage.reward_programs.find(status=ProgramStatus.ACTIVE)
            total_users = self.storage.users.count()
            pending_verifications = len(self.verifications.pending())

        return AdminStats(
            total_users=total_users,
            total_deposits=sum(
                (d["amount"] for d in deposits if d["status"] == DepositStatus.APPROVED), Decimal("0")
            ),
            total_withdrawals=sum(
                (w["amount"] for w in withdrawals if w["status"] == WithdrawalStatus.COMPLETED), Decimal("0")
            ),
            pending_deposits=sum(1 for d in deposits if d["status"] == DepositStatus.PENDING),
            pending_withdrawals=sum(1 for w in withdrawals if w["status"] == WithdrawalStatus.PENDING),
            active_reward_programs=len(active_programs),
            pending_youtube_verifications=pending_verifications,
        )

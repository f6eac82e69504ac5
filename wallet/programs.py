import logging
from decimal import Decimal
from typing import Optional

from .clock import Clock, utcnow
from .errors import NotFoundError, ReferenceResolutionError
from .models import ActiveProgramView, ProgramStatus, RewardProgram
from .storage import InMemoryStorage
from .tiers import NOT_ELIGIBLE, weekly_profit_for

logger = logging.getLogger(__name__)


class RewardProgramLifecycle:
    def __init__(self, storage: InMemoryStorage, clock: Clock = utcnow):
        self.storage = storage
        self.clock = clock

    def activate(self, user_id: int, deposit_id: int, deposit_amount: Decimal) -> Optional[RewardProgram]:
        """
        Start a program for an approved deposit, ending the current one.

        Returns None when the deposit is below the lowest tier. The rollover
        is not a merge: weeks of the ended program that were never paid are
        dropped.
        """
        with self.storage.atomic():
            deposit = self.storage.deposits.get(deposit_id)
            if not deposit or deposit["user_id"] != user_id:
                raise ReferenceResolutionError(
                    f"Deposit {deposit_id} does not belong to user {user_id}"
                )

            weekly_profit = weekly_profit_for(deposit_amount)
            if weekly_profit == NOT_ELIGIBLE:
                logger.info(f"Deposit {deposit_id} of {deposit_amount} is below the lowest tier, no program")
                return None

            now = self.clock()
            current = self.storage.reward_programs.first(user_id=user_id, status=ProgramStatus.ACTIVE)
            if current:
                self.storage.reward_programs.update(
                    current["id"], status=ProgramStatus.ENDED, end_date=now
                )
                logger.info(f"Program {current['id']} of user {user_id} ended by rollover")

            row = self.storage.reward_programs.create({
                "user_id": user_id,
                "deposit_id": deposit_id,
                "deposit_amount": Decimal(deposit_amount),
                "weekly_profit": weekly_profit,
                "status": ProgramStatus.ACTIVE,
                "start_date": now,
                "end_date": None,
                "created_at": now,
            })

        logger.info(f"Program {row['id']} started for user {user_id}: {weekly_profit}/week")
        return RewardProgram(**row)

    def end(self, program_id: int) -> RewardProgram:
        with self.storage.atomic():
            program = self.get(program_id)
            if program.status == ProgramStatus.ENDED:
                return program
            row = self.storage.reward_programs.update(
                program_id, status=ProgramStatus.ENDED, end_date=self.clock()
            )
        return RewardProgram(**row)

    def get(self, program_id: int) -> RewardProgram:
        row = self.storage.reward_programs.get(program_id)
        if not row:
            raise NotFoundError(f"Reward program {program_id} not found")
        return RewardProgram(**row)

    def active_for_user(self, user_id: int) -> Optional[RewardProgram]:
        row = self.storage.reward_programs.first(user_id=user_id, status=ProgramStatus.ACTIVE)
        return RewardProgram(**row) if row else None

    def list_active(self) -> list[RewardProgram]:
        return [RewardProgram(**r) for r in self.storage.reward_programs.find(status=ProgramStatus.ACTIVE)]

    def list_for_user(self, user_id: int) -> list[RewardProgram]:
        return [RewardProgram(**r) for r in self.storage.reward_programs.find(user_id=user_id)]

    def active_view(self, user_id: int) -> Optional[ActiveProgramView]:
        program = self.active_for_user(user_id)
        if program is None:
            return None
        return ActiveProgramView(
            id=program.id,
            deposit=program.deposit_amount,
            weekly_profit=program.weekly_profit,
            status=program.status,
            start_date=program.start_date,
        )

"""
Profit Schedule

A program pays its weekly profit for a fixed number of weeks. Week ``n``
starts ``(n - 1) * 7`` days after the program and ends six days later.

Two paths produce the schedule:

- ``ProfitScheduleGenerator`` answers "what does the schedule look like",
  preferring persisted Profit rows and projecting the rest from the clock.
  It never writes.
- ``ProfitReconciler`` is the periodic job that turns elapsed weeks into
  paid Profit rows with a matching journal entry. Only rows it writes count
  towards a user's balance.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Optional

from .clock import Clock, utcnow
from .config import Config
from .journal import TransactionJournal
from .models import (
    ProfitStatus,
    ProgramStatus,
    ReconciliationResult,
    RewardProgram,
    ScheduleEntry,
    TransactionStatus,
    TransactionType,
)
from .storage import InMemoryStorage

logger = logging.getLogger(__name__)

WEEK = timedelta(days=7)
WEEK_SPAN = timedelta(days=6)


def week_window(start_date: datetime, week_number: int) -> tuple[datetime, datetime]:
    week_start = start_date + (week_number - 1) * WEEK
    return week_start, week_start + WEEK_SPAN


def projected_status(start: datetime, end: datetime, now: datetime) -> ProfitStatus:
    if end < now:
        return ProfitStatus.PAID
    if start <= now <= end:
        return ProfitStatus.PROCESSING
    return ProfitStatus.PENDING


class ProfitScheduleGenerator:
    def __init__(self, storage: InMemoryStorage, clock: Clock = utcnow, weeks: int = Config.PROGRAM_WEEKS):
        self.storage = storage
        self.clock = clock
        self.weeks = weeks

    def schedule_for(self, program: RewardProgram) -> list[ScheduleEntry]:
        now = self.clock()
        persisted = {
            row["week_number"]: row
            for row in self.storage.profits.find(reward_program_id=program.id)
        }

        schedule = []
        for week_number in range(1, self.weeks + 1):
            row = persisted.get(week_number)
            if row:
                schedule.append(ScheduleEntry(
                    week_number=week_number,
                    start_date=row["start_date"],
                    end_date=row["end_date"],
                    amount=row["amount"],
                    status=row["status"],
                    persisted=True,
                ))
                continue

            start, end = week_window(program.start_date, week_number)
            schedule.append(ScheduleEntry(
                week_number=week_number,
                start_date=start,
                end_date=end,
                amount=program.weekly_profit,
                status=projected_status(start, end, now),
            ))
        return schedule

    def schedule_for_user(self, user_id: int) -> list[ScheduleEntry]:
        row = self.storage.reward_programs.first(user_id=user_id, status=ProgramStatus.ACTIVE)
        if row is None:
            return []
        return self.schedule_for(RewardProgram(**row))


class ProfitReconciler:
    def __init__(
        self,
        storage: InMemoryStorage,
        journal: TransactionJournal,
        clock: Clock = utcnow,
        weeks: int = Config.PROGRAM_WEEKS,
    ):
        self.storage = storage
        self.journal = journal
        self.clock = clock
        self.weeks = weeks

    def reconcile(self, now: Optional[datetime] = None) -> ReconciliationResult:
        now = now or self.clock()
        result = ReconciliationResult()

        with self.storage.atomic():
            for row in self.storage.reward_programs.find(status=ProgramStatus.ACTIVE):
                program = RewardProgram(**row)
                result.programs_checked += 1
                result.profits_created += self._pay_elapsed_weeks(program, now)

                paid_weeks = len(self.storage.profits.find(
                    reward_program_id=program.id, status=ProfitStatus.PAID
                ))
                if paid_weeks >= self.weeks:
                    self.storage.reward_programs.update(
                        program.id, status=ProgramStatus.ENDED, end_date=now
                    )
                    result.programs_completed += 1
                    logger.info(f"Program {program.id} completed all {self.weeks} weeks")

        if result.profits_created:
            logger.info(
                f"Reconciliation paid {result.profits_created} profit weeks "
                f"across {result.programs_checked} programs"
            )
        return result

    def _pay_elapsed_weeks(self, program: RewardProgram, now: datetime) -> int:
        existing = {
            r["week_number"] for r in self.storage.profits.find(reward_program_id=program.id)
        }
        created = 0
        for week_number in range(1, self.weeks + 1):
            start, end = week_window(program.start_date, week_number)
            if end >= now:
                break
            if week_number in existing:
                continue

            profit = self.storage.profits.create({
                "user_id": program.user_id,
                "reward_program_id": program.id,
                "amount": program.weekly_profit,
                "week_number": week_number,
                "start_date": start,
                "end_date": end,
                "status": ProfitStatus.PAID,
                "paid_at": now,
                "created_at": now,
            })
            self.journal.record(
                user_id=program.user_id,
                type=TransactionType.PROFIT,
                amount=program.weekly_profit,
                description=f"Week {week_number} profit",
                status=TransactionStatus.COMPLETED,
                reference_id=profit["id"],
            )
            created += 1
        return created

    async def run_forever(self, interval: float) -> None:
        """
        Reconcile now and then every ``interval`` seconds until cancelled.

        Each run happens in a worker thread so the store lock is never taken
        on the event loop. A failed run is logged and retried next interval.
        """
        try:
            while True:
                try:
                    await asyncio.to_thread(self.reconcile)
                except Exception:
                    logger.exception("Profit reconciliation failed")
                await asyncio.sleep(interval)
        except asyncio.CancelledError:
            logger.info("Profit reconciliation stopped")
            raise

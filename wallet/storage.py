import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from .errors import DuplicateRecordError
from .models import Page


class Repository:
    """
    One in-memory table of dict rows keyed by an auto-incrementing id.
    Rows are replaced on update, never mutated in place.

    ``unique`` lists field groups that must not repeat across rows, e.g.
    ``(("referred_id",), ("reward_program_id", "week_number"))``.
    """

    def __init__(self, name: str, unique: tuple[tuple[str, ...], ...] = ()):
        self.name = name
        self.unique = unique
        self.rows: dict[int, dict] = {}
        self.next_id = 1

    def _rows(self) -> list[dict]:
        # Readers may run while another thread inserts
        return list(self.rows.values())

    def get(self, record_id: int) -> Optional[dict]:
        return self.rows.get(record_id)

    def find(self, **filters) -> list[dict]:
        return [
            row for row in self._rows()
            if all(row.get(key) == value for key, value in filters.items())
        ]

    def first(self, **filters) -> Optional[dict]:
        for row in self._rows():
            if all(row.get(key) == value for key, value in filters.items()):
                return row
        return None

    def create(self, data: dict) -> dict:
        self._check_unique(data)
        row = {**data, "id": self.next_id}
        self.rows[row["id"]] = row
        self.next_id += 1
        return row

    def update(self, record_id: int, **changes) -> Optional[dict]:
        row = self.rows.get(record_id)
        if row is None:
            return None
        updated = {**row, **changes, "id": record_id}
        self._check_unique(updated, exclude=record_id)
        self.rows[record_id] = updated
        return updated

    def list(self, offset: int = 0, limit: Optional[int] = None) -> list[dict]:
        rows = self._rows()
        if limit is None:
            return rows[offset:]
        return rows[offset:offset + limit]

    def count(self) -> int:
        return len(self.rows)

    def _check_unique(self, data: dict, exclude: Optional[int] = None) -> None:
        for fields in self.unique:
            key = tuple(data.get(f) for f in fields)
            if any(v is None for v in key):
                continue
            for row in self._rows():
                row_id = row["id"]
                if row_id != exclude and tuple(row.get(f) for f in fields) == key:
                    raise DuplicateRecordError(
                        f"{self.name}: duplicate value for {', '.join(fields)}: {key}"
                    )


class InMemoryStorage:
    def __init__(self):
        self.users = Repository("users", unique=(("username",), ("referral_code",)))
        self.deposits = Repository("deposits")
        self.withdrawals = Repository("withdrawals")
        self.youtube_verifications = Repository("youtube_verifications")
        self.reward_programs = Repository("reward_programs")
        self.profits = Repository("profits", unique=(("reward_program_id", "week_number"),))
        self.transactions = Repository("transactions")
        self.referrals = Repository("referrals", unique=(("referred_id",),))
        self.announcements = Repository("announcements")

        self._lock = threading.RLock()
        self._depth = 0

    @property
    def repositories(self) -> list[Repository]:
        return [
            self.users, self.deposits, self.withdrawals, self.youtube_verifications,
            self.reward_programs, self.profits, self.transactions, self.referrals,
            self.announcements,
        ]

    @contextmanager
    def atomic(self) -> Iterator["InMemoryStorage"]:
        """
        Serialize a unit of work and roll every table back if it raises.

        Re-entrant: nested units join the outermost one, which owns the
        snapshot.
        """
        with self._lock:
            outermost = self._depth == 0
            snapshot = self._snapshot() if outermost else None
            self._depth += 1
            try:
                yield self
            except BaseException:
                if outermost:
                    self._restore(snapshot)
                raise
            finally:
                self._depth -= 1

    @contextmanager
    def read(self) -> Iterator["InMemoryStorage"]:
        """Hold the lock for a consistent read. Nothing is snapshotted."""
        with self._lock:
            yield self

    def _snapshot(self) -> dict:
        return {
            repo.name: (dict(repo.rows), repo.next_id)
            for repo in self.repositories
        }

    def _restore(self, snapshot: dict) -> None:
        for repo in self.repositories:
            rows, next_id = snapshot[repo.name]
            repo.rows = rows
            repo.next_id = next_id


def paginate(rows: list, page: int, limit: int) -> list:
    page = max(page, 1)
    start = (page - 1) * limit
    return rows[start:start + limit]


def page_info(total: int, page: int, limit: int) -> Page:
    return Page(page=page, limit=limit, total=total, pages=-(-total // limit) if limit else 0)

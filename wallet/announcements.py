from typing import Optional

from .clock import Clock, utcnow
from .errors import NotFoundError
from .models import Announcement, CreateAnnouncementRequest
from .storage import InMemoryStorage


class AnnouncementBoard:
    def __init__(self, storage: InMemoryStorage, clock: Clock = utcnow):
        self.storage = storage
        self.clock = clock

    def create(self, request: CreateAnnouncementRequest, created_by: Optional[int] = None) -> Announcement:
        with self.storage.atomic():
            row = self.storage.announcements.create({
                "content": request.content,
                "language": request.language,
                "active": request.active,
                "created_by": created_by,
                "created_at": self.clock(),
            })
        return Announcement(**row)

    def toggle_active(self, announcement_id: int) -> Announcement:
        with self.storage.atomic():
            row = self.storage.announcements.get(announcement_id)
            if not row:
                raise NotFoundError(f"Announcement {announcement_id} not found")
            row = self.storage.announcements.update(announcement_id, active=not row["active"])
        return Announcement(**row)

    def current(self) -> Optional[Announcement]:
        active = self.storage.announcements.find(active=True)
        if not active:
            return None
        return Announcement(**max(active, key=lambda r: (r["created_at"], r["id"])))

    def list_all(self) -> list[Announcement]:
        rows = sorted(
            self.storage.announcements.list(),
            key=lambda r: (r["created_at"], r["id"]),
            reverse=True,
        )
        return [Announcement(**r) for r in rows]

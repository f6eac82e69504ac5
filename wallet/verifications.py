import logging
from typing import Optional

from .clock import Clock, utcnow
from .errors import InvalidStateError, NotFoundError, ValidationError
from .models import VerificationState, VerificationStatus, YouTubeVerification
from .storage import InMemoryStorage

logger = logging.getLogger(__name__)


class YouTubeVerificationLifecycle:
    """Screenshot proof of channel engagement; the latest submission counts."""

    def __init__(self, storage: InMemoryStorage, clock: Clock = utcnow):
        self.storage = storage
        self.clock = clock

    def submit(self, user_id: int, screenshot_ref: str) -> YouTubeVerification:
        if not screenshot_ref or not screenshot_ref.strip():
            raise ValidationError("Screenshot is required")

        with self.storage.atomic():
            if not self.storage.users.get(user_id):
                raise NotFoundError(f"User {user_id} not found")
            row = self.storage.youtube_verifications.create({
                "user_id": user_id,
                "screenshot_ref": screenshot_ref,
                "status": VerificationStatus.PENDING,
                "admin_note": None,
                "created_at": self.clock(),
                "updated_at": None,
            })
        return YouTubeVerification(**row)

    def approve(self, verification_id: int, note: Optional[str] = None) -> YouTubeVerification:
        with self.storage.atomic():
            verification = self._pending(verification_id)
            row = self.storage.youtube_verifications.update(
                verification_id,
                status=VerificationStatus.APPROVED,
                admin_note=note or "Approved by admin",
                updated_at=self.clock(),
            )
            self.storage.users.update(verification.user_id, youtube_verified=True)

        logger.info(f"YouTube verification {verification_id} approved for user {verification.user_id}")
        return YouTubeVerification(**row)

    def reject(self, verification_id: int, note: Optional[str] = None) -> YouTubeVerification:
        with self.storage.atomic():
            self._pending(verification_id)
            row = self.storage.youtube_verifications.update(
                verification_id,
                status=VerificationStatus.REJECTED,
                admin_note=note or "Rejected by admin",
                updated_at=self.clock(),
            )
        return YouTubeVerification(**row)

    def get(self, verification_id: int) -> YouTubeVerification:
        row = self.storage.youtube_verifications.get(verification_id)
        if not row:
            raise NotFoundError(f"Verification {verification_id} not found")
        return YouTubeVerification(**row)

    def list_for_user(self, user_id: int) -> list[YouTubeVerification]:
        return [YouTubeVerification(**r) for r in self.storage.youtube_verifications.find(user_id=user_id)]

    def latest(self, user_id: int) -> Optional[YouTubeVerification]:
        rows = self.storage.youtube_verifications.find(user_id=user_id)
        if not rows:
            return None
        return YouTubeVerification(**max(rows, key=lambda r: (r["created_at"], r["id"])))

    def status(self, user_id: int) -> VerificationState:
        user = self.storage.users.get(user_id)
        if not user:
            raise NotFoundError(f"User {user_id} not found")
        latest = self.latest(user_id)
        return VerificationState(
            verified=user["youtube_verified"],
            status=latest.status if latest else None,
            last_submission=latest.created_at if latest else None,
        )

    def pending(self) -> list[YouTubeVerification]:
        user_ids = {r["user_id"] for r in self.storage.youtube_verifications.list()}
        latest = [self.latest(user_id) for user_id in sorted(user_ids)]
        return [v for v in latest if v and v.status == VerificationStatus.PENDING]

    def _pending(self, verification_id: int) -> YouTubeVerification:
        verification = self.get(verification_id)
        if verification.status != VerificationStatus.PENDING:
            raise InvalidStateError(
                f"Cannot change verification in {verification.status.value} state"
            )
        return verification

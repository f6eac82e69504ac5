import logging
import secrets
from datetime import timedelta
from typing import Optional

from .clock import Clock, utcnow
from .errors import NotFoundError, ValidationError
from .models import (
    ProgramStatus,
    RegisterUserRequest,
    User,
    UserDetails,
    UserRole,
)
from .referrals import ReferralResolver
from .storage import InMemoryStorage

logger = logging.getLogger(__name__)


class UserRegistry:
    def __init__(self, storage: InMemoryStorage, referrals: ReferralResolver, clock: Clock = utcnow):
        self.storage = storage
        self.referrals = referrals
        self.clock = clock

    def register(self, request: RegisterUserRequest) -> User:
        with self.storage.atomic():
            user = self._create(request, role=UserRole.USER)
            self.referrals.resolve(user.id, request.referral_code)
            row = self.storage.users.get(user.id)

        logger.info(f"Registered user {user.id} ({user.username})")
        return User(**row)

    def provision_admin(
        self,
        username: str,
        full_name: str = "Administrator",
        mobile_number: str = "00000000000",
    ) -> User:
        """Create the admin account once; later calls return the existing one."""
        with self.storage.atomic():
            existing = self.find_by_username(username)
            if existing:
                if existing.role != UserRole.ADMIN:
                    row = self.storage.users.update(existing.id, role=UserRole.ADMIN)
                    return User(**row)
                return existing

            admin = self._create(
                RegisterUserRequest(
                    username=username,
                    full_name=full_name,
                    address="Administration",
                    city="N/A",
                    mobile_number=mobile_number,
                    easypaisa_number=mobile_number,
                ),
                role=UserRole.ADMIN,
            )

        logger.info(f"Provisioned admin account {admin.username}")
        return admin

    def get(self, user_id: int) -> User:
        row = self.storage.users.get(user_id)
        if not row:
            raise NotFoundError(f"User {user_id} not found")
        return User(**row)

    def find_by_username(self, username: str) -> Optional[User]:
        wanted = username.lower()
        for row in self.storage.users.list():
            if row["username"].lower() == wanted:
                return User(**row)
        return None

    def list(self, page: int = 1, limit: int = 10) -> list[User]:
        offset = (max(page, 1) - 1) * limit
        return [User(**r) for r in self.storage.users.list(offset=offset, limit=limit)]

    def count(self) -> int:
        return self.storage.users.count()

    def toggle_active(self, user_id: int) -> User:
        with self.storage.atomic():
            user = self.get(user_id)
            row = self.storage.users.update(user_id, active=not user.active)
        logger.info(f"User {user_id} active={row['active']}")
        return User(**row)

    def details(self, user_id: int) -> UserDetails:
        user = self.get(user_id)
        program = self.storage.reward_programs.first(user_id=user_id, status=ProgramStatus.ACTIVE)

        next_payout = None
        if program:
            now = self.clock()
            days_since_start = (now - program["start_date"]).days
            next_payout = now + timedelta(days=7 - (days_since_start % 7))

        return UserDetails(
            id=user.id,
            username=user.username,
            full_name=user.full_name,
            easypaisa_number=user.easypaisa_number,
            registered_at=user.created_at,
            reward_activation_date=program["start_date"] if program else None,
            next_payout_date=next_payout,
        )

    def _create(self, request: RegisterUserRequest, role: UserRole) -> User:
        if self.find_by_username(request.username):
            raise ValidationError("Username already exists")

        row = self.storage.users.create({
            "username": request.username,
            "full_name": request.full_name,
            "address": request.address,
            "city": request.city,
            "mobile_number": request.mobile_number,
            "easypaisa_number": request.easypaisa_number,
            "role": role,
            "youtube_verified": False,
            "referral_code": self._new_referral_code(),
            "referred_by": None,
            "active": True,
            "created_at": self.clock(),
        })
        return User(**row)

    def _new_referral_code(self) -> str:
        while True:
            code = secrets.token_hex(4).upper()
            if not self.storage.users.first(referral_code=code):
                return code

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class DepositStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class WithdrawalStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    REJECTED = "rejected"


class VerificationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ProgramStatus(str, Enum):
    ACTIVE = "active"
    ENDED = "ended"


class ProfitStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    PAID = "paid"


class TransactionType(str, Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    PROFIT = "profit"
    REFERRAL = "referral"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    REJECTED = "rejected"


class ReferralStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class RegisterUserRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    full_name: str = Field(..., min_length=3, max_length=100)
    address: str = Field(..., min_length=5, max_length=200)
    city: str = Field(..., min_length=2, max_length=50)
    mobile_number: str = Field(..., min_length=10, max_length=15)
    easypaisa_number: str = Field(..., min_length=10, max_length=15)
    referral_code: Optional[str] = Field(default=None, description="Code of the referring user")

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "username": "ayesha",
            "full_name": "Ayesha Khan",
            "address": "House 12, Street 4",
            "city": "Lahore",
            "mobile_number": "03001234567",
            "easypaisa_number": "03001234567",
            "referral_code": "9F3A1C2B"
        }
    })


class SubmitDepositRequest(BaseModel):
    amount: Decimal
    receipt_ref: str = Field(..., description="Opaque handle to the uploaded receipt")


class WithdrawalRequest(BaseModel):
    amount: Decimal


class PlanUpgradeRequest(BaseModel):
    deposit: Decimal


class SubmitVerificationRequest(BaseModel):
    screenshot_ref: str


class AdminActionRequest(BaseModel):
    note: Optional[str] = None


class CreateAnnouncementRequest(BaseModel):
    content: str = Field(..., min_length=5)
    language: str = Field(default="en")
    active: bool = True


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

class User(BaseModel):
    id: int
    username: str
    full_name: str
    address: str
    city: str
    mobile_number: str
    easypaisa_number: str
    role: UserRole = UserRole.USER
    youtube_verified: bool = False
    referral_code: str
    referred_by: Optional[int] = None
    active: bool = True
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class Deposit(BaseModel):
    id: int
    user_id: int
    amount: Decimal
    receipt_ref: str
    status: DepositStatus = DepositStatus.PENDING
    admin_note: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class Withdrawal(BaseModel):
    id: int
    user_id: int
    amount: Decimal
    fee: Decimal
    status: WithdrawalStatus = WithdrawalStatus.PENDING
    processed_at: Optional[datetime] = None
    admin_note: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @property
    def net_amount(self) -> Decimal:
        """Amount the user actually receives."""
        return self.amount - self.fee


class YouTubeVerification(BaseModel):
    id: int
    user_id: int
    screenshot_ref: str
    status: VerificationStatus = VerificationStatus.PENDING
    admin_note: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class RewardProgram(BaseModel):
    id: int
    user_id: int
    deposit_id: int
    deposit_amount: Decimal
    weekly_profit: Decimal
    status: ProgramStatus = ProgramStatus.ACTIVE
    start_date: datetime
    end_date: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class Profit(BaseModel):
    id: int
    user_id: int
    reward_program_id: int
    amount: Decimal
    week_number: int
    start_date: datetime
    end_date: datetime
    status: ProfitStatus = ProfitStatus.PENDING
    paid_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class Transaction(BaseModel):
    id: int
    user_id: int
    type: TransactionType
    amount: Decimal
    description: str
    reference_id: Optional[int] = None
    status: TransactionStatus
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class Referral(BaseModel):
    id: int
    referrer_id: int
    referred_id: int
    bonus: Decimal
    status: ReferralStatus = ReferralStatus.PENDING
    created_at: datetime
    paid_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class Announcement(BaseModel):
    id: int
    content: str
    language: str = "en"
    active: bool = True
    created_by: Optional[int] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------

class UserStats(BaseModel):
    total_deposited: Decimal
    current_balance: Decimal
    total_profit: Decimal
    total_withdrawn: Decimal
    referral_bonus: Decimal
    referral_count: int


class PlanPreview(BaseModel):
    deposit: Decimal
    weekly_profit: Decimal
    eligible: bool


class PlanUpgrade(BaseModel):
    message: str
    required_deposit: Decimal
    weekly_profit: Decimal
    deposit: Deposit


class DepositApproval(BaseModel):
    deposit: Deposit
    reward_program: Optional[RewardProgram] = None


class ActiveProgramView(BaseModel):
    id: int
    deposit: Decimal
    weekly_profit: Decimal
    status: ProgramStatus
    start_date: datetime


class ScheduleEntry(BaseModel):
    week_number: int
    start_date: datetime
    end_date: datetime
    amount: Decimal
    status: ProfitStatus
    persisted: bool = False


class ReconciliationResult(BaseModel):
    programs_checked: int = 0
    profits_created: int = 0
    programs_completed: int = 0


class Activity(BaseModel):
    id: int
    title: str
    description: str
    type: TransactionType
    amount: Decimal
    date: datetime
    status: TransactionStatus


class ReferredUser(BaseModel):
    id: int
    full_name: str
    contact: str
    registered_at: datetime
    active: bool
    bonus: Decimal
    status: ReferralStatus


class ReferralStats(BaseModel):
    total_referrals: int
    total_earnings: Decimal
    monthly_referrals: int
    monthly_earnings: Decimal


class VerificationState(BaseModel):
    verified: bool
    status: Optional[VerificationStatus] = None
    last_submission: Optional[datetime] = None


class UserDetails(BaseModel):
    id: int
    username: str
    full_name: str
    easypaisa_number: str
    registered_at: datetime
    reward_activation_date: Optional[datetime] = None
    next_payout_date: Optional[datetime] = None


class Page(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class UserWithStats(BaseModel):
    user: User
    stats: UserStats


class UserListResponse(BaseModel):
    users: list[UserWithStats]
    pagination: Page


class DepositListResponse(BaseModel):
    deposits: list[Deposit]
    pagination: Page


class WithdrawalListResponse(BaseModel):
    withdrawals: list[Withdrawal]
    pagination: Page


class UserOverview(BaseModel):
    user: User
    stats: UserStats
    deposits: list[Deposit]
    withdrawals: list[Withdrawal]
    reward_programs: list[RewardProgram]
    transactions: list[Transaction]
    youtube_verifications: list[YouTubeVerification]


class AdminStats(BaseModel):
    total_users: int
    total_deposits: Decimal
    total_withdrawals: Decimal
    pending_deposits: int
    pending_withdrawals: int
    active_reward_programs: int
    pending_youtube_verifications: int

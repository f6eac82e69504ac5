import asyncio
import logging
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Config
from .errors import (
    DuplicateRecordError,
    InsufficientBalanceError,
    InvalidStateError,
    NotFoundError,
    ReferenceResolutionError,
    ValidationError,
    WalletError,
)
from .logger import setup_logger
from .models import (
    ActiveProgramView,
    Activity,
    AdminActionRequest,
    AdminStats,
    Announcement,
    CreateAnnouncementRequest,
    Deposit,
    DepositApproval,
    DepositListResponse,
    PlanPreview,
    PlanUpgrade,
    PlanUpgradeRequest,
    ReconciliationResult,
    ReferralStats,
    ReferredUser,
    RegisterUserRequest,
    ScheduleEntry,
    SubmitDepositRequest,
    SubmitVerificationRequest,
    User,
    UserDetails,
    UserListResponse,
    UserOverview,
    UserStats,
    VerificationState,
    Withdrawal,
    WithdrawalListResponse,
    WithdrawalRequest,
    YouTubeVerification,
)
from .service import WalletService
from .tiers import REWARD_TIERS, preview_plan

logger = logging.getLogger(__name__)

ERROR_STATUS = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (InsufficientBalanceError, status.HTTP_400_BAD_REQUEST),
    (InvalidStateError, status.HTTP_409_CONFLICT),
    (DuplicateRecordError, status.HTTP_409_CONFLICT),
    (ReferenceResolutionError, 422),
)


def error_status(exc: WalletError) -> int:
    for error_type, code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_400_BAD_REQUEST


def _note(request: Optional[AdminActionRequest]) -> Optional[str]:
    return request.note if request else None


def create_app(
    service: Optional[WalletService] = None,
    root_path: str = "",
    configure_logging: bool = True,
    reconcile_interval: Optional[float] = None,
) -> FastAPI:
    if configure_logging:
        setup_logger("wallet")

    wallet = service or WalletService()
    wallet.provision_from_config()

    if reconcile_interval is None:
        reconcile_interval = Config.RECONCILE_INTERVAL_SECONDS

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        task = None
        if reconcile_interval > 0:
            task = asyncio.create_task(wallet.reconciler.run_forever(reconcile_interval))
            logger.info(f"Profit reconciliation every {reconcile_interval}s")
        yield
        if task:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    app = FastAPI(
        title="Investment Wallet API",
        description="Deposits, weekly reward programs, withdrawals and referrals with a derived balance",
        version="1.0.0",
        root_path=root_path,
        lifespan=lifespan,
    )
    app.state.wallet = wallet

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(WalletError)
    async def wallet_error_handler(request: Request, exc: WalletError):
        return JSONResponse(status_code=error_status(exc), content={"detail": str(exc)})

    # The auth layer in front of this app supplies a trusted user id
    def current_user(x_user_id: Optional[int] = Header(default=None)) -> User:
        if x_user_id is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
        try:
            user = wallet.users.get(x_user_id)
        except NotFoundError:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
        if not user.active:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Account is inactive")
        return user

    def admin_user(user: User = Depends(current_user)) -> User:
        if not user.is_admin:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
        return user

    @app.get("/health", tags=["System"])
    def health_check():
        return {"status": "healthy", "service": "investment-wallet"}

    # ------------------------------------------------------------------
    # Registration and profile
    # ------------------------------------------------------------------

    @app.post("/auth/register", response_model=User, status_code=status.HTTP_201_CREATED, tags=["Users"])
    def register(request: RegisterUserRequest) -> User:
        return wallet.users.register(request)

    @app.get("/auth/me", response_model=User, tags=["Users"])
    def me(user: User = Depends(current_user)) -> User:
        return user

    @app.get("/user/stats", response_model=UserStats, tags=["Users"])
    def user_stats(user: User = Depends(current_user)) -> UserStats:
        return wallet.user_stats(user.id)

    @app.get("/user/details", response_model=UserDetails, tags=["Users"])
    def user_details(user: User = Depends(current_user)) -> UserDetails:
        return wallet.users.details(user.id)

    # ------------------------------------------------------------------
    # Deposits and reward programs
    # ------------------------------------------------------------------

    @app.post("/user/deposits", response_model=Deposit, status_code=status.HTTP_201_CREATED, tags=["Deposits"])
    def submit_deposit(request: SubmitDepositRequest, user: User = Depends(current_user)) -> Deposit:
        return wallet.deposits.submit(user.id, request.amount, request.receipt_ref)

    @app.get("/user/deposits", response_model=list[Deposit], tags=["Deposits"])
    def list_deposits(user: User = Depends(current_user)) -> list[Deposit]:
        return wallet.deposits.list_for_user(user.id)

    @app.get("/plans", tags=["Rewards"])
    def list_plans():
        return [{"min_deposit": minimum, "weekly_profit": profit} for minimum, profit in REWARD_TIERS]

    @app.get("/plans/preview", response_model=PlanPreview, tags=["Rewards"])
    def plan_preview(deposit: Decimal = Query(..., gt=0)) -> PlanPreview:
        return preview_plan(deposit)

    @app.post("/user/update-reward-plan", response_model=PlanUpgrade, tags=["Rewards"])
    def update_reward_plan(request: PlanUpgradeRequest, user: User = Depends(current_user)) -> PlanUpgrade:
        return wallet.deposits.request_plan_upgrade(user.id, request.deposit)

    @app.get("/user/active-reward", response_model=Optional[ActiveProgramView], tags=["Rewards"])
    def active_reward(user: User = Depends(current_user)) -> Optional[ActiveProgramView]:
        return wallet.programs.active_view(user.id)

    @app.get("/user/profit-schedule", response_model=list[ScheduleEntry], tags=["Rewards"])
    def profit_schedule(user: User = Depends(current_user)) -> list[ScheduleEntry]:
        return wallet.schedule.schedule_for_user(user.id)

    # ------------------------------------------------------------------
    # Withdrawals
    # ------------------------------------------------------------------

    @app.post("/user/withdrawals", response_model=Withdrawal, status_code=status.HTTP_201_CREATED, tags=["Withdrawals"])
    def request_withdrawal(request: WithdrawalRequest, user: User = Depends(current_user)) -> Withdrawal:
        return wallet.withdrawals.request(user.id, request.amount)

    @app.get("/user/withdrawals", response_model=list[Withdrawal], tags=["Withdrawals"])
    def list_withdrawals(user: User = Depends(current_user)) -> list[Withdrawal]:
        return wallet.withdrawals.list_for_user(user.id)

    # ------------------------------------------------------------------
    # YouTube verification
    # ------------------------------------------------------------------

    @app.post("/user/youtube-verification", response_model=YouTubeVerification,
              status_code=status.HTTP_201_CREATED, tags=["Verification"])
    def submit_verification(request: SubmitVerificationRequest,
                            user: User = Depends(current_user)) -> YouTubeVerification:
        return wallet.verifications.submit(user.id, request.screenshot_ref)

    @app.get("/user/youtube-status", response_model=VerificationState, tags=["Verification"])
    def youtube_status(user: User = Depends(current_user)) -> VerificationState:
        return wallet.verifications.status(user.id)

    # ------------------------------------------------------------------
    # Referrals and activity
    # ------------------------------------------------------------------

    @app.get("/user/referrals", response_model=list[ReferredUser], tags=["Referrals"])
    def referrals(user: User = Depends(current_user)) -> list[ReferredUser]:
        return wallet.referrals.list_for_referrer(user.id)

    @app.get("/user/referrals/stats", response_model=ReferralStats, tags=["Referrals"])
    def referral_stats(user: User = Depends(current_user)) -> ReferralStats:
        return wallet.referrals.stats(user.id)

    @app.get("/user/activities", response_model=list[Activity], tags=["Activity"])
    def activities(user: User = Depends(current_user)) -> list[Activity]:
        return wallet.journal.activities(user.id)

    @app.get("/user/transactions", response_model=list[Activity], tags=["Activity"])
    def transactions(
        filter: str = "all",
        time_range: str = Query(default="30days", alias="timeRange"),
        user: User = Depends(current_user),
    ) -> list[Activity]:
        return wallet.journal.history(user.id, filter, time_range)

    @app.get("/announcements/current", response_model=Optional[Announcement], tags=["Announcements"])
    def current_announcement() -> Optional[Announcement]:
        return wallet.announcements.current()

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    @app.get("/admin/users", response_model=UserListResponse, tags=["Admin"])
    def admin_users(page: int = Query(1, ge=1), limit: int = Query(10, ge=1),
                    admin: User = Depends(admin_user)) -> UserListResponse:
        return wallet.users_with_stats(page, limit)

    @app.get("/admin/users/{user_id}", response_model=UserOverview, tags=["Admin"])
    def admin_user_overview(user_id: int, admin: User = Depends(admin_user)) -> UserOverview:
        return wallet.user_overview(user_id)

    @app.post("/admin/users/{user_id}/toggle-active", response_model=User, tags=["Admin"])
    def admin_toggle_user(user_id: int, admin: User = Depends(admin_user)) -> User:
        return wallet.users.toggle_active(user_id)

    @app.get("/admin/deposits", response_model=DepositListResponse, tags=["Admin"])
    def admin_deposits(page: int = Query(1, ge=1), limit: int = Query(10, ge=1),
                       status_filter: Optional[str] = Query(default=None, alias="status"),
                       admin: User = Depends(admin_user)) -> DepositListResponse:
        return wallet.deposits.list_all(status_filter, page, limit)

    @app.post("/admin/deposits/{deposit_id}/approve", response_model=DepositApproval, tags=["Admin"])
    def approve_deposit(deposit_id: int, request: Optional[AdminActionRequest] = None,
                        admin: User = Depends(admin_user)) -> DepositApproval:
        return wallet.deposits.approve(deposit_id, _note(request))

    @app.post("/admin/deposits/{deposit_id}/reject", response_model=Deposit, tags=["Admin"])
    def reject_deposit(deposit_id: int, request: Optional[AdminActionRequest] = None,
                       admin: User = Depends(admin_user)) -> Deposit:
        return wallet.deposits.reject(deposit_id, _note(request))

    @app.get("/admin/withdrawals", response_model=WithdrawalListResponse, tags=["Admin"])
    def admin_withdrawals(page: int = Query(1, ge=1), limit: int = Query(10, ge=1),
                          status_filter: Optional[str] = Query(default=None, alias="status"),
                          admin: User = Depends(admin_user)) -> WithdrawalListResponse:
        return wallet.withdrawals.list_all(status_filter, page, limit)

    @app.post("/admin/withdrawals/{withdrawal_id}/process", response_model=Withdrawal, tags=["Admin"])
    def process_withdrawal(withdrawal_id: int, request: Optional[AdminActionRequest] = None,
                           admin: User = Depends(admin_user)) -> Withdrawal:
        return wallet.withdrawals.process(withdrawal_id, _note(request))

    @app.post("/admin/withdrawals/{withdrawal_id}/complete", response_model=Withdrawal, tags=["Admin"])
    def complete_withdrawal(withdrawal_id: int, request: Optional[AdminActionRequest] = None,
                            admin: User = Depends(admin_user)) -> Withdrawal:
        return wallet.withdrawals.complete(withdrawal_id, _note(request))

    @app.post("/admin/withdrawals/{withdrawal_id}/reject", response_model=Withdrawal, tags=["Admin"])
    def reject_withdrawal(withdrawal_id: int, request: Optional[AdminActionRequest] = None,
                          admin: User = Depends(admin_user)) -> Withdrawal:
        return wallet.withdrawals.reject(withdrawal_id, _note(request))

    @app.get("/admin/youtube-verifications", response_model=list[YouTubeVerification], tags=["Admin"])
    def pending_verifications(admin: User = Depends(admin_user)) -> list[YouTubeVerification]:
        return wallet.verifications.pending()

    @app.post("/admin/youtube-verifications/{verification_id}/approve",
              response_model=YouTubeVerification, tags=["Admin"])
    def approve_verification(verification_id: int, request: Optional[AdminActionRequest] = None,
                             admin: User = Depends(admin_user)) -> YouTubeVerification:
        return wallet.verifications.approve(verification_id, _note(request))

    @app.post("/admin/youtube-verifications/{verification_id}/reject",
              response_model=YouTubeVerification, tags=["Admin"])
    def reject_verification(verification_id: int, request: Optional[AdminActionRequest] = None,
                            admin: User = Depends(admin_user)) -> YouTubeVerification:
        return wallet.verifications.reject(verification_id, _note(request))

    @app.get("/admin/announcements", response_model=list[Announcement], tags=["Admin"])
    def admin_announcements(admin: User = Depends(admin_user)) -> list[Announcement]:
        return wallet.announcements.list_all()

    @app.post("/admin/announcements", response_model=Announcement,
              status_code=status.HTTP_201_CREATED, tags=["Admin"])
    def create_announcement(request: CreateAnnouncementRequest,
                            admin: User = Depends(admin_user)) -> Announcement:
        return wallet.announcements.create(request, created_by=admin.id)

    @app.post("/admin/announcements/{announcement_id}/toggle-active", response_model=Announcement, tags=["Admin"])
    def toggle_announcement(announcement_id: int, admin: User = Depends(admin_user)) -> Announcement:
        return wallet.announcements.toggle_active(announcement_id)

    @app.post("/admin/profits/reconcile", response_model=ReconciliationResult, tags=["Admin"])
    def reconcile_profits(admin: User = Depends(admin_user)) -> ReconciliationResult:
        return wallet.reconciler.reconcile()

    @app.get("/admin/stats", response_model=AdminStats, tags=["Admin"])
    def admin_stats(admin: User = Depends(admin_user)) -> AdminStats:
        return wallet.admin_stats()

    return app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(create_app(), host="0.0.0.0", port=8000)

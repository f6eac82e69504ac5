"""
Investment Wallet

This package provides:
- A derived balance: deposits + paid profits + referral bonuses - withdrawals
- Deposit review: pending → approved / rejected
- Tiered weekly reward programs with rollover on each approved deposit
- A 12-week profit schedule and the job that pays elapsed weeks
- Withdrawals: pending → processing → completed / rejected
- One-time referral bonuses at registration
"""

from .errors import (
    WalletError,
    ValidationError,
    NotFoundError,
    InvalidStateError,
    InsufficientBalanceError,
    ReferenceResolutionError,
    DuplicateRecordError,
)
from .models import (
    DepositStatus,
    WithdrawalStatus,
    ProgramStatus,
    ProfitStatus,
    TransactionType,
    TransactionStatus,
    UserStats,
)
from .service import WalletService
from .storage import InMemoryStorage
from .tiers import weekly_profit_for

__all__ = [
    "WalletError",
    "ValidationError",
    "NotFoundError",
    "InvalidStateError",
    "InsufficientBalanceError",
    "ReferenceResolutionError",
    "DuplicateRecordError",
    "DepositStatus",
    "WithdrawalStatus",
    "ProgramStatus",
    "ProfitStatus",
    "TransactionType",
    "TransactionStatus",
    "UserStats",
    "WalletService",
    "InMemoryStorage",
    "weekly_profit_for",
]

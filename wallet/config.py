# ==========================================================================================================
# -------------- Configuration for the wallet service ------------------------------------------------------
# ==========================================================================================================
import os
from decimal import Decimal
from dotenv import load_dotenv


if os.environ.get("APP_ENV") != "production":
    load_dotenv()


class Config:

    APP_ENV = os.getenv("APP_ENV", "development")
    CURRENCY = os.getenv("CURRENCY", "PKR")

    MIN_WITHDRAWAL = Decimal(os.getenv("MIN_WITHDRAWAL", "400"))
    WITHDRAWAL_FEE = Decimal(os.getenv("WITHDRAWAL_FEE", "100"))
    REFERRAL_BONUS = Decimal(os.getenv("REFERRAL_BONUS", "100"))
    PROGRAM_WEEKS = int(os.getenv("PROGRAM_WEEKS", "12"))

    # Seconds between profit reconciliation runs; 0 turns the background job off
    RECONCILE_INTERVAL_SECONDS = float(os.getenv("RECONCILE_INTERVAL_SECONDS", "3600"))

    ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@example.com")

    # Seed admin; nothing is provisioned unless ADMIN_USERNAME is set
    ADMIN_USERNAME = os.getenv("ADMIN_USERNAME")
    ADMIN_FULL_NAME = os.getenv("ADMIN_FULL_NAME", "Administrator")
    ADMIN_MOBILE_NUMBER = os.getenv("ADMIN_MOBILE_NUMBER", "00000000000")

    LOG_DIR = os.getenv("LOG_DIR", "logs")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

import os
from datetime import timedelta
from dotenv import load_dotenv

# Load .env (VS Code terminals sometimes don't inject env vars)
load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./prize_engine.db")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# One spin per identity per rolling window
SPIN_COOLDOWN = timedelta(days=int(os.getenv("SPIN_COOLDOWN_DAYS", "15")))

COUPON_VALIDITY = timedelta(days=int(os.getenv("COUPON_VALIDITY_DAYS", "30")))
PENDING_SPIN_TTL = timedelta(hours=int(os.getenv("PENDING_SPIN_TTL_HOURS", "24")))

COUPON_CODE_PREFIX = os.getenv("COUPON_CODE_PREFIX", "WHEEL")
COUPON_CODE_LENGTH = int(os.getenv("COUPON_CODE_LENGTH", "6"))
COUPON_CODE_MAX_ATTEMPTS = int(os.getenv("COUPON_CODE_MAX_ATTEMPTS", "5"))

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./wellness.db")

# Security - CRITICAL: No default secret key in production
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

# Tokens are issued by the identity service and signed with the shared secret
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

# Appointment dates and times are wall-clock values in this zone
APP_TIMEZONE = os.getenv("APP_TIMEZONE", "Africa/Nairobi")
DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "KES")

# Booking rules
BOOKING_DEFAULT_DURATION = int(os.getenv("BOOKING_DEFAULT_DURATION", "30"))  # minutes
BOOKING_MIN_DURATION = int(os.getenv("BOOKING_MIN_DURATION", "15"))
BOOKING_MAX_DURATION = int(os.getenv("BOOKING_MAX_DURATION", "180"))
BOOKING_CANCELLATION_WINDOW_HOURS = int(os.getenv("BOOKING_CANCELLATION_WINDOW_HOURS", "24"))

# Order pricing - delivery is free when the subtotal is strictly above the threshold
ORDER_DELIVERY_FEE = float(os.getenv("ORDER_DELIVERY_FEE", "200"))
ORDER_FREE_DELIVERY_THRESHOLD = float(os.getenv("ORDER_FREE_DELIVERY_THRESHOLD", "1000"))
ORDER_TAX_RATE = float(os.getenv("ORDER_TAX_RATE", "0.16"))  # 16% VAT
ORDER_DELIVERY_MINUTES = int(os.getenv("ORDER_DELIVERY_MINUTES", "45"))

# Frontend base URL, used for CORS and CSP defaults
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

# Rate limiting (per authenticated user, fixed window of one minute)
RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
BOOKING_RATE_LIMIT = int(os.getenv("BOOKING_RATE_LIMIT", "20"))
ORDER_RATE_LIMIT = int(os.getenv("ORDER_RATE_LIMIT", "20"))
REDIS_URL = os.getenv("REDIS_URL")

# Deployment
IS_PRODUCTION = os.getenv("ENVIRONMENT", "development").lower() == "production"
SECURITY_HEADERS_ENABLED = os.getenv("SECURITY_HEADERS_ENABLED", "true").lower() == "true"
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", f"{FRONTEND_URL},http://localhost:3000").split(",")

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./medtour.db")

ENVIRONMENT = os.getenv("ENVIRONMENT", "development").lower()

# Clerk Configuration
CLERK_SECRET_KEY = os.getenv("CLERK_SECRET_KEY")
CLERK_JWKS_URL = os.getenv("CLERK_JWKS_URL", "https://api.clerk.com/v1/jwks")
# Expected "iss" claim, e.g. https://clerk.medtour.example (skipped when unset)
CLERK_ISSUER = os.getenv("CLERK_ISSUER")
# Allowed "azp" claims (frontend origins), comma separated (skipped when empty)
CLERK_AUTHORIZED_PARTIES = [
    party.strip()
    for party in os.getenv("CLERK_AUTHORIZED_PARTIES", "").split(",")
    if party.strip()
]

# Daily.co Configuration
DAILY_API_KEY = os.getenv("DAILY_API_KEY")
DAILY_API_URL = os.getenv("DAILY_API_URL", "https://api.daily.co/v1")
DAILY_ROOM_PREFIX = os.getenv("DAILY_ROOM_PREFIX", "medtour")

# Medical report uploads (stored on local disk, one directory per user)
UPLOAD_DIR = os.getenv("UPLOAD_DIR", str(Path.cwd() / "uploads"))
MAX_REPORT_SIZE_BYTES = int(os.getenv("MAX_REPORT_SIZE_BYTES", str(10 * 1024 * 1024)))
MAX_REPORTS_PER_UPLOAD = int(os.getenv("MAX_REPORTS_PER_UPLOAD", "5"))

# Frontend base URL, used for CORS defaults and the security headers policy
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "ALLOWED_ORIGINS", f"{FRONTEND_URL},http://localhost:3000"
    ).split(",")
    if origin.strip()
]

SECURITY_HEADERS_ENABLED = os.getenv("SECURITY_HEADERS_ENABLED", "true").lower() == "true"

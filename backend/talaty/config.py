"""
Talaty eKYC - Runtime Configuration
All values come from the environment with development defaults.
"""
import os

BACKEND_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# File storage
UPLOAD_DIR = os.getenv("UPLOAD_DIR", os.path.join(BACKEND_DIR, "data", "uploads"))
ALLOWED_FILE_TYPES = [
    ext.strip().lower()
    for ext in os.getenv("ALLOWED_FILE_TYPES", "jpg,jpeg,png,pdf,doc,docx").split(",")
    if ext.strip()
]
MAX_FILE_SIZE_MB = int(os.getenv("MAX_FILE_SIZE_MB", "10"))

# Scheduler endpoints
INTERNAL_API_KEY = os.getenv("INTERNAL_API_KEY", "scheduler-internal-key-change-in-production")

# Outbound email (unset SMTP_HOST = log only)
SMTP_HOST = os.getenv("SMTP_HOST")
SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
SMTP_USER = os.getenv("SMTP_USER")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
SMTP_USE_TLS = os.getenv("SMTP_USE_TLS", "true").lower() == "true"
FROM_EMAIL = os.getenv("FROM_EMAIL", "Talaty <no-reply@talaty.local>")

# Database (conftest points this at in-memory SQLite)
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"postgresql://{os.getenv('USER', 'postgres')}@localhost:5432/talaty"
)
DATABASE_ECHO = os.getenv("DATABASE_ECHO", "false").lower() == "true"

# Tokens
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "talaty-secret-key-change-in-production")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_HOURS = int(os.getenv("ACCESS_TOKEN_EXPIRE_HOURS", "24"))

import os

DATABASE_URL = os.getenv("SWAP_DB")

if not DATABASE_URL:
    raise RuntimeError("SWAP_DB environment variable is not set")

JWT_SECRET = os.getenv("JWT_SECRET")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM") or "HS256"
JWT_EXPIRE_DAYS = int(os.getenv("JWT_EXPIRE_DAYS") or "7")

if not JWT_SECRET:
    raise RuntimeError("JWT_SECRET environment variable is not set")

RABBIT_URL = os.getenv("RABBIT_URL")  # optional in dev, required if you want events

GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID")
GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET")
GOOGLE_REDIRECT_URI = os.getenv("GOOGLE_REDIRECT_URI")

# where the OAuth callback sends the browser back to
FRONTEND_URL = (os.getenv("FRONTEND_URL") or "http://localhost:3000").rstrip("/")

SQL_ECHO = (os.getenv("SQL_ECHO") or "").lower() in ("1", "true", "yes")
LOG_LEVEL = os.getenv("LOG_LEVEL") or "INFO"

SERVICE_NAME = "swap-service"

import os
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "postgresql://localhost:5432/lms")
DB_SCHEMA = os.getenv("DB_SCHEMA", "lms")
DB_ECHO = os.getenv("DB_ECHO", "false").lower() in ("1", "true", "yes")
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "10"))
DB_POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", "30"))
# per round trip; asyncpg command_timeout is in seconds
DB_STATEMENT_TIMEOUT_MS = int(os.getenv("DB_STATEMENT_TIMEOUT_MS", "10000"))

SECRET_KEY = os.getenv("SECRET_KEY")
ALGORITHM = os.getenv("ALGORITHM", "HS256")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_JSON = os.getenv("LOG_JSON", "false").lower() in ("1", "true", "yes")

API_PREFIX = os.getenv("API_PREFIX", "/api/v1").rstrip("/")
CORS_ORIGINS = [
    o.strip()
    for o in os.getenv("CORS_ORIGINS", "*").split(",")
    if o.strip()
]

THREADS_PAGE_SIZE = int(os.getenv("THREADS_PAGE_SIZE", "10"))
THREADS_MAX_PAGE_SIZE = int(os.getenv("THREADS_MAX_PAGE_SIZE", "100"))

THREAD_CREATE_RATE = os.getenv("THREAD_CREATE_RATE", "5/minute;60/hour")
THREAD_REPLY_RATE = os.getenv("THREAD_REPLY_RATE", "10/minute;200/hour")
THREAD_LIKE_RATE = os.getenv("THREAD_LIKE_RATE", "60/minute")

RATELIMIT_ENABLED = os.getenv("RATELIMIT_ENABLED", "true").lower() in ("1", "true", "yes")

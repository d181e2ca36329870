import os
from dotenv import load_dotenv

load_dotenv()


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


ENV = os.getenv("ENV", "development")
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./marketplace.db")

# Principal tokens are issued elsewhere; only decoding happens here
SECRET_KEY = os.getenv("SECRET_KEY", "change-me")
ALGORITHM = os.getenv("ALGORITHM", "HS256")

LOG_FILE = os.getenv("LOG_FILE", "app.log")

ENFORCE_AVAILABILITY_WINDOW = _as_bool(os.getenv("ENFORCE_AVAILABILITY_WINDOW", "false"))
RECENT_REVIEWS_LIMIT = int(os.getenv("RECENT_REVIEWS_LIMIT", "10"))
MAX_RECOMMENDATIONS = int(os.getenv("MAX_RECOMMENDATIONS", "50"))

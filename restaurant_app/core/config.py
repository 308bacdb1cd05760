import os

from dotenv import load_dotenv

# Load the .env at the project root
load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./restaurant.db")
ENV = os.getenv("ENV", "dev")
ENV_NORMALIZED = ENV.lower()
IS_DEV = ENV_NORMALIZED in {"dev", "development", "local"}
IS_TEST = ENV_NORMALIZED == "test"
IS_PROD = ENV_NORMALIZED in {"prod", "production"}

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# CORS
_cors_env = os.getenv("CORS_ORIGINS", "")
CORS_ORIGINS = [origin.strip() for origin in _cors_env.split(",") if origin.strip() and origin.strip() != "*"]

if not CORS_ORIGINS and IS_DEV:
    CORS_ORIGINS = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

# Orders
DEFAULT_PREPARATION_TIME_MINUTES = int(os.getenv("DEFAULT_PREPARATION_TIME_MINUTES", "30"))
MAX_PREPARATION_TIME_MINUTES = int(os.getenv("MAX_PREPARATION_TIME_MINUTES", "240"))

# Availability: "dependents" recomputes only menu items linked to the changed rows,
# "all" sweeps every menu item that has recipe requirements.
AVAILABILITY_RECOMPUTE_SCOPE = os.getenv("AVAILABILITY_RECOMPUTE_SCOPE", "dependents").strip().lower()
if AVAILABILITY_RECOMPUTE_SCOPE not in {"dependents", "all"}:
    AVAILABILITY_RECOMPUTE_SCOPE = "dependents"

# Schema: create_all on startup (dev sqlite) or rely on alembic
AUTO_CREATE_SCHEMA = _env_flag(
    "AUTO_CREATE_SCHEMA",
    "1" if DATABASE_URL.startswith("sqlite") and not IS_PROD else "0",
)

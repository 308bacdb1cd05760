import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from restaurant_app.core.config import AUTO_CREATE_SCHEMA, CORS_ORIGINS
from restaurant_app.core.database import Base, engine
from restaurant_app.core.logging_setup import configure_logging
from restaurant_app.core.startup_checks import ensure_migrations_applied, validate_database_environment
from restaurant_app.middleware.observability import ObservabilityMiddleware
import restaurant_app.models  # noqa: F401  models must be imported before create_all
import restaurant_app.services.event_handlers  # noqa: F401  registers event bus handlers

from restaurant_app.routers.internal_metrics import router as internal_metrics_router
from restaurant_app.routers.inventory import router as inventory_router
from restaurant_app.routers.menu import router as menu_router
from restaurant_app.routers.orders import router as orders_router

configure_logging()

logger = logging.getLogger(__name__)
STARTUP_PREFIX = "[STARTUP]"
REPO_ROOT = Path(__file__).resolve().parents[1]
ALEMBIC_CONFIG_PATH = Path(
    os.getenv("ALEMBIC_CONFIG", str(REPO_ROOT / "alembic.ini"))
)


@asynccontextmanager
async def lifespan(_: FastAPI):
    _startup_tasks()
    yield


app = FastAPI(
    title="Restaurant Ordering API",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(ObservabilityMiddleware)


def _startup_tasks() -> None:
    try:
        validate_database_environment()
        if AUTO_CREATE_SCHEMA:
            logger.info("%s creating schema with create_all", STARTUP_PREFIX)
            Base.metadata.create_all(bind=engine)
        else:
            ensure_migrations_applied(engine=engine, alembic_config_path=ALEMBIC_CONFIG_PATH)
    except Exception:
        logger.exception("%s ERROR startup failed", STARTUP_PREFIX)
        raise


app.include_router(menu_router)
app.include_router(orders_router)
app.include_router(inventory_router)
app.include_router(internal_metrics_router)


@app.get("/")
def root():
    return {"status": "ok"}


@app.get("/health")
def health():
    return {"status": "healthy"}

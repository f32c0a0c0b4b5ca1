# receipt_hub/main.py
# Receipt Hub - import receipts, stock audits and quick-scan receiving
from __future__ import annotations
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from receipt_hub.settings import settings
from receipt_hub.database import init_db, close_db, check_db_health
from receipt_hub.services.notifications import LoggingPushClient
from receipt_hub.routers.receipt_imports import router as receipt_imports_router
from receipt_hub.routers.receipt_checks import router as receipt_checks_router

# ---------------------------------------------------------
# Logging setup
# ---------------------------------------------------------
from receipt_hub.logging_setup import setup_logging
setup_logging(settings)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------
# Lifespan: Database and push client init/cleanup
# ---------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    await init_db()
    logger.info("Database initialized")

    push = LoggingPushClient(enabled=settings.PUSH_NOTIFICATIONS_ENABLED)
    await push.init()
    app.state.push_client = push
    yield
    await close_db()
    logger.info("Database connections closed")


app = FastAPI(title="Receipt Hub", version="1.0.0", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://127.0.0.1:8000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(receipt_imports_router)
app.include_router(receipt_checks_router)


@app.get("/health")
async def health():
    return await check_db_health()

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import config
from app.core.db.engine import check_database_connection, dispose_engine
from app.core.error_handler import global_exception_handler
from app.modules.drafts import router as drafts_router, admin_router as drafts_admin_router

# Configure logging to output to console
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if config.is_sqlite and ":memory:" not in config.database_url:
        # aiosqlite does not create missing parent directories
        Path(config.database_url.split("///", 1)[-1]).parent.mkdir(parents=True, exist_ok=True)
    logger.info("Starting Drafts API...")
    yield
    await dispose_engine()


app = FastAPI(
    title="Drafts API",
    description="Invoice and offer drafts with device-local and database storage",
    version="1.0.0",
    lifespan=lifespan,
)

# Add global exception handler
app.add_exception_handler(Exception, global_exception_handler)

# Middlewares
origins = [
    "http://localhost",
    "http://localhost:3000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers with /api prefix
app.include_router(drafts_router, prefix="/api")
app.include_router(drafts_admin_router, prefix="/api")


@app.get("/health")
async def health() -> dict:
    return {"status": "ok", "database": await check_database_connection()}

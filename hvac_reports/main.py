"""
HVAC CRM report engine - backend entry point
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv
import os

from .database import init_database
from .utils.logger import setup_logger
from .middleware import TenantMiddleware
from .routes import (
    reports_router,
    export_router,
    cache_router,
)

load_dotenv()

logger = setup_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan"""
    # runs once per worker process
    worker_id = os.getpid()
    logger.info(f"Worker {worker_id} starting...")

    try:
        init_database()
        logger.info(f"Worker {worker_id} database initialised")
    except Exception as e:
        logger.error(f"Worker {worker_id} database initialisation failed: {e}", exc_info=True)
        raise

    yield

    logger.info(f"Worker {worker_id} shutting down...")


app = FastAPI(
    title="HVAC CRM Report Engine API",
    description="Custom report definitions, execution, caching and export",
    version="1.0.0",
    lifespan=lifespan
)

app.include_router(reports_router)
app.include_router(export_router)
app.include_router(cache_router)

# === MIDDLEWARE REGISTRATION ===

app.add_middleware(TenantMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        origin.strip()
        for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173").split(",")
        if origin.strip()
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root():
    return {"message": "HVAC CRM Report Engine API", "status": "running"}


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    host = os.getenv("BACKEND_HOST", "0.0.0.0")
    port = int(os.getenv("BACKEND_PORT", 8000))
    workers = int(os.getenv("BACKEND_WORKERS", 1))
    log_level = os.getenv("LOG_LEVEL", "info").lower()

    logger.info(f"Starting server: {host}:{port}, workers={workers}, log_level={log_level}")

    uvicorn.run(
        "hvac_reports.main:app",
        host=host,
        port=port,
        workers=workers,
        log_level=log_level,
        access_log=log_level == "debug"
    )

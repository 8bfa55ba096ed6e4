# servicehub/main.py

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from servicehub.common.database.database import connect_to_db, close_db_connection
from servicehub.common.config import settings
from servicehub.common.logging_config import configure_logging
from servicehub.common.realtime.hub import realtime_hub
from servicehub.router.routers import include_routers

logger = logging.getLogger(__name__)

# Lifespan context manager for startup and shutdown events
@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    await connect_to_db()
    logger.info(f"ServiceHub API started ({settings.APP_ENV})")
    yield
    # Let in-flight realtime deliveries finish before the engine goes away
    await realtime_hub.drain()
    await close_db_connection()

# Initialize FastAPI app with lifespan manager
app = FastAPI(
    title="ServiceHub API",
    description="Bookings, conversations and notifications for the ServiceHub marketplace",
    version="1.0.0",
    lifespan=lifespan
)

# Middleware for CORS using allowed origins from settings
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers from a separate file
include_routers(app)

# Health check
@app.get("/health")
async def health():
    return {"status": "ok"}

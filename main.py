import asyncio
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlmodel import Session

from config import get_settings
from database import create_db_and_tables, get_engine
from errors import register_exception_handlers
from routes import groups, todos, users
from services.sessions import SessionManager
from utils.log import configure_logging

settings = get_settings()
configure_logging(settings.log_level)

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Todo API",
    description="Todo lists with groups, scoped to cookie-authenticated users",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS configuration; credentials are needed for the session cookie
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include routers
app.include_router(users.router, prefix="/api", tags=["users"])
app.include_router(todos.router, prefix="/api", tags=["todos"])
app.include_router(groups.router, prefix="/api", tags=["groups"])

_sweeper: asyncio.Task = None


def sweep_sessions_once() -> int:
    """Remove expired and revoked sessions using a fresh database session"""
    with Session(get_engine()) as session:
        return SessionManager(session, get_settings()).sweep_expired()


async def sweep_sessions_forever(interval_seconds: float):
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await asyncio.to_thread(sweep_sessions_once)
        except Exception:
            # Expired sessions are already rejected on resolve; try again next round
            logger.exception("Session sweep failed")


@app.on_event("startup")
async def on_startup():
    """Create database tables and start the session sweeper"""
    global _sweeper
    create_db_and_tables()
    if settings.session_sweep_interval_seconds > 0:
        _sweeper = asyncio.create_task(sweep_sessions_forever(settings.session_sweep_interval_seconds))
    logger.info("Todo API started")


@app.on_event("shutdown")
async def on_shutdown():
    global _sweeper
    if _sweeper is not None:
        _sweeper.cancel()
        _sweeper = None


@app.get("/")
def read_root():
    """Root endpoint"""
    return {
        "message": "Todo API is running",
        "version": "1.0.0",
        "docs": "/docs"
    }


@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {"status": "healthy"}

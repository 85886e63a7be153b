"""
Karmic Diary API - Main Application
===================================

FastAPI application entry point with middleware configuration,
background services and route registration.
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import newrelic.agent

# Configure logging for the application (root logger defaults to WARNING)
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from karma_diary.bot.loader import start_bot, stop_bot
from karma_diary.config import settings
from karma_diary.core.env_check import check_environment, log_environment_report
from karma_diary.core.errors import setup_exception_handlers
from karma_diary.db.seed import seed_principles
from karma_diary.db.session import close_db, init_db, session_scope
from karma_diary.scheduler import start_scheduler, stop_scheduler
from karma_diary.services.cache import close_redis, init_redis

logger = logging.getLogger(__name__)

APP_VERSION = "1.0.0"


# =============================================================================
# New Relic Transaction Enrichment Middleware (Raw ASGI)
# =============================================================================

class NewRelicTransactionMiddleware:
    """
    Raw ASGI middleware that adds custom attributes to every New Relic
    transaction.

    Raw ASGI keeps the handler in the same task, so New Relic's
    contextvars-based spans for Redis and the database stay attached.

    Captures: response status, latency, HTTP method, route pattern and
    user ID (when authenticated).
    """

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start = time.perf_counter()
        status_code = 500  # until http.response.start is seen

        async def send_wrapper(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            txn = newrelic.agent.current_transaction()
            if txn:
                route = scope.get("route")
                route_path = route.path if route else scope.get("path", "unknown")

                newrelic.agent.add_custom_attributes([
                    ("http.method", scope.get("method", "")),
                    ("http.route", route_path),
                    ("http.status_code", status_code),
                    ("http.duration_ms", round((time.perf_counter() - start) * 1000, 2)),
                    ("environment", settings.ENVIRONMENT),
                ])

                # Set by get_current_user
                state = scope.get("state")
                user_id = state.get("user_id") if isinstance(state, dict) else None
                if user_id:
                    newrelic.agent.add_custom_attribute("enduser.id", user_id)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Handles startup and shutdown of:
    - Database connection and the principle seed
    - Redis connection
    - Reminder scheduler
    - Telegram bot (polling task or webhook registration)

    A failing dependency is logged and startup continues, so /health
    stays reachable.
    """
    logger.info("Starting Karmic Diary API...")
    log_environment_report(check_environment(settings))

    try:
        await init_db()
        async with session_scope() as db:
            await seed_principles(db)
    except Exception as e:
        logger.warning("Database initialization failed: %s", e)

    try:
        await init_redis()
    except Exception as e:
        logger.warning("Redis connection failed: %s", e)

    try:
        start_scheduler()
    except Exception as e:
        logger.warning("Scheduler failed to start: %s", e)

    try:
        await start_bot()
    except Exception as e:
        logger.warning("Telegram bot failed to start: %s", e)

    yield

    logger.info("Shutting down Karmic Diary API...")
    await stop_bot()
    stop_scheduler()
    await close_redis()
    await close_db()


app = FastAPI(
    title="Karmic Diary API",
    description="""
## Karmic Diary Backend

Daily practice of ten karmic principles through journaling, reminders and
an AI mentor.

### Features
- **Authentication**: Telegram Login Widget, bot deep-link sessions and Google
- **Journal**: Entries, streaks, statistics and achievements
- **Reminders**: Telegram and Web Push on fixed slots or a custom schedule
- **AI**: Daily insights, journal advice and mentor chat (OpenAI)
- **Subscription**: WayForPay checkout with Trial, Light, Plus and Pro plans

### Rate Limits
- Authentication: 10 requests/minute
- AI endpoints: 20 requests/15 minutes
- Read endpoints: 100 requests/minute
    """,
    version=APP_VERSION,
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    openapi_url="/openapi.json" if settings.is_development else None,
    lifespan=lifespan,
    responses={
        400: {"description": "Invalid request"},
        401: {"description": "Not authenticated"},
        402: {"description": "Subscription or plan upgrade required"},
        403: {"description": "Permission denied"},
        404: {"description": "Resource not found"},
        422: {"description": "Validation error"},
        429: {"description": "Rate limit exceeded"},
        500: {"description": "Internal server error"},
        503: {"description": "Dependency unavailable"},
    },
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(NewRelicTransactionMiddleware)

setup_exception_handlers(app)


# =============================================================================
# Health Check Endpoints
# =============================================================================

@app.get("/health", tags=["Health"])
async def health_check() -> dict:
    """Liveness probe. Does not touch the database or Redis."""
    return {
        "status": "healthy",
        "version": APP_VERSION,
        "environment": settings.ENVIRONMENT,
    }


@app.get("/", tags=["Health"])
async def root() -> dict:
    """Root endpoint with API information."""
    return {
        "name": "Karmic Diary API",
        "version": APP_VERSION,
        "docs": "/docs" if settings.is_development else "Disabled in production",
    }


# =============================================================================
# API Routes
# =============================================================================

from karma_diary.api.v1 import auth, user, dashboard, principles
app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(user.router, prefix="/api/user", tags=["User"])
app.include_router(dashboard.router, prefix="/api/dashboard", tags=["Dashboard"])
app.include_router(principles.router, prefix="/api/principles", tags=["Principles"])

from karma_diary.api.v1 import journal, achievements
app.include_router(journal.router, prefix="/api/journal", tags=["Journal"])
app.include_router(achievements.router, prefix="/api/achievements", tags=["Achievements"])

from karma_diary.api.v1 import subscription, webhooks
app.include_router(subscription.router, prefix="/api/subscriptions", tags=["Subscription"])
app.include_router(webhooks.router, prefix="/api/webhooks", tags=["Webhooks"])

from karma_diary.api.v1 import ai, insights
app.include_router(ai.router, prefix="/api/ai", tags=["AI"])
app.include_router(insights.router, prefix="/api/insights", tags=["AI"])

from karma_diary.api.v1 import reminders, push, telegram
app.include_router(reminders.router, prefix="/api/reminders", tags=["Reminders"])
app.include_router(push.router, prefix="/api/push", tags=["Push"])
app.include_router(telegram.router, prefix="/api/telegram", tags=["Telegram"])

import structlog
from backend_common.fastapi_app import create_service_app
from fastapi import Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from .config import get_settings
from .logging_config import configure_logging
from .realtime import change_feed
from .redis_client import close_redis, init_redis
from .routers import (
    assistant,
    auth,
    calendar,
    knowledge,
    meals,
    messaging,
    profile,
    programs,
    realtime,
    storage,
    teams,
    users,
)

configure_logging()
logger = structlog.get_logger(__name__)

settings = get_settings()

API_PREFIX = "/api/v1"


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    # the driver message goes back verbatim so the client can show it
    detail = str(exc.orig) if exc.orig is not None else str(exc)
    logger.warning("integrity_error", path=request.url.path, error=detail)
    return JSONResponse(status_code=409, content={"detail": detail})


tags_metadata = [
    {"name": "auth", "description": "Sign-in, sign-up and the current session."},
    {"name": "teams", "description": "Teams, rosters and team photos."},
    {"name": "users", "description": "User administration, roles and team memberships."},
    {"name": "messaging", "description": "Direct, group and team announcement conversations."},
    {"name": "calendar", "description": "Team and player calendars, events and the add-event submissions."},
    {"name": "training", "description": "Training programs, days, exercises and their assignments."},
    {"name": "meals", "description": "Meals, meal plans and their assignments."},
    {"name": "knowledge", "description": "Knowledge base categories and articles."},
    {"name": "assistant", "description": "AI assistant conversations."},
    {"name": "profile", "description": "Profile, performance stats, My Team and the dashboard."},
]

app = create_service_app(
    title="teamhub-service",
    version="0.1.0",
    description="Team management: directory, messaging, calendars, training, meals and knowledge base",
    cors_allow_origins=settings.cors_origins,
    cors_allow_credentials=True,
    exception_handlers={IntegrityError: integrity_error_handler},
    openapi_tags=tags_metadata,
)


@app.on_event("startup")
async def startup_event():
    change_feed.max_queue = settings.TEAMHUB_REALTIME_QUEUE_SIZE
    redis = await init_redis()
    if redis is not None:
        await change_feed.start_relay(redis, settings.TEAMHUB_REALTIME_CHANNEL)
    logger.info("teamhub_service_started", app_env=settings.APP_ENV, realtime_relay=redis is not None)


@app.on_event("shutdown")
async def shutdown_event():
    await change_feed.stop_relay()
    await close_redis()


app.include_router(auth.router, prefix=API_PREFIX)
app.include_router(teams.router, prefix=API_PREFIX)
app.include_router(users.router, prefix=API_PREFIX)
app.include_router(messaging.router, prefix=API_PREFIX)
app.include_router(realtime.router, prefix=API_PREFIX)
app.include_router(calendar.router, prefix=API_PREFIX)
app.include_router(programs.router, prefix=API_PREFIX)
app.include_router(meals.router, prefix=API_PREFIX)
app.include_router(knowledge.router, prefix=API_PREFIX)
app.include_router(assistant.router, prefix=API_PREFIX)
app.include_router(profile.router, prefix=API_PREFIX)
app.include_router(storage.router, prefix=API_PREFIX)

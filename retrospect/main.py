import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from retrospect.core.config import settings
from retrospect.core.database import init_db
from retrospect.core.exceptions import register_exception_handlers
from retrospect.core.logging import configure_logging
from retrospect.middleware import CorrelationIdMiddleware

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.APP_NAME)

app.add_middleware(CorrelationIdMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Correlation-ID"],
)

# Route imports
from retrospect.api.health import router as health_router
from retrospect.api.v1 import analytics as v1_analytics
from retrospect.api.v1 import assistant as v1_assistant
from retrospect.api.v1 import auth as v1_auth
from retrospect.api.v1 import projects as v1_projects
from retrospect.api.v1 import tasks as v1_tasks

# Register routers
app.include_router(health_router, prefix="/api", tags=["health"])

# v1 API routes
app.include_router(v1_auth.router, prefix="/api/v1")
app.include_router(v1_projects.router, prefix="/api/v1")
app.include_router(v1_analytics.router, prefix="/api/v1")
app.include_router(v1_assistant.router, prefix="/api/v1")
app.include_router(v1_tasks.router, prefix="/api/v1")

# Exception handlers
register_exception_handlers(app)


@app.on_event("startup")
async def on_startup():
    logger.info("Starting app", extra={"app": settings.APP_NAME})
    if settings.CREATE_TABLES_ON_START:
        await init_db()
        logger.info("Database tables ensured")


@app.on_event("shutdown")
async def on_shutdown():
    logger.info("Shutting down")

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from lms_progress.api.courses import router as courses_router
from lms_progress.api.enrollments import router as enrollments_router
from lms_progress.api.health import router as health_router
from lms_progress.api.metrics_endpoint import router as metrics_router
from lms_progress.api.progress import router as progress_router
from lms_progress.core.config import SETTINGS
from lms_progress.core.logging import setup_logging
from lms_progress.db.engine import lifespan_db
from lms_progress.db.redis import lifespan_redis
from lms_progress.middleware.metrics import MetricsMiddleware
from lms_progress.middleware.request_context import RequestContextMiddleware

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    # Nested so teardown runs in reverse order.
    async with lifespan_db():
        async with lifespan_redis():
            yield


app = FastAPI(
    title="lms-progress",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Last added runs first: RequestContext -> Metrics -> CORS -> route.
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(courses_router)
app.include_router(enrollments_router)
app.include_router(progress_router)

logger.info(
    "lms-progress started  env=%s log_level=%s port=%d gate_ms=%d docs=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    SETTINGS.engagement_gate_ms,
    "on" if SETTINGS.is_dev else "off",
)

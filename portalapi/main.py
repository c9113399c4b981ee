import logging

from dotenv import load_dotenv
from fastapi import FastAPI
from mangum import Mangum
from starlette.middleware.cors import CORSMiddleware

load_dotenv("portalapi/.env")

from portalapi import containers  # noqa: E402
from portalapi.config import settings  # noqa: E402
from portalapi.core.exception_handlers import register_exception_handlers  # noqa: E402
from portalapi.core.logging_middleware import LoggingMiddleware  # noqa: E402
from portalapi.logging_config import setup_logging  # noqa: E402
from portalapi.routers import (  # noqa: E402
    auth_router,
    enrollment_router,
    experience_router,
    health_router,
    leaderboard_router,
    period_router,
    point_router,
    rollback_router,
    store_router,
)

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    setup_logging(settings.LOG_LEVEL, debug=settings.DEBUG)

    app = FastAPI(title=settings.APP_NAME, debug=settings.DEBUG)
    app.container = containers.Container()  # type: ignore

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(LoggingMiddleware)

    register_exception_handlers(app)

    app.include_router(health_router.router)
    for module in (
        auth_router,
        period_router,
        point_router,
        experience_router,
        rollback_router,
        leaderboard_router,
        store_router,
        enrollment_router,
    ):
        app.include_router(module.router, prefix=settings.API_V1_STR)

    logger.info(f"{settings.APP_NAME} started ({settings.ENVIRONMENT})")
    return app


app = create_app()

handler = Mangum(app)

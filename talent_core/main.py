import uvicorn
from fastapi import FastAPI

from talent_core.api.routes.health import router as health_router
from talent_core.api.routes.internal_applications import router as internal_applications_router
from talent_core.api.routes.internal_points import router as internal_points_router
from talent_core.api.routes.internal_referrals import router as internal_referrals_router
from talent_core.core.config import get_settings
from talent_core.core.logging import configure_logging


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level, json_logs=settings.log_json)

    app = FastAPI(
        title="Talent Core API",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.include_router(health_router)
    app.include_router(internal_referrals_router)
    app.include_router(internal_points_router)
    app.include_router(internal_applications_router)
    return app


app = create_app()


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        "talent_core.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.app_env == "dev",
    )


if __name__ == "__main__":
    run()

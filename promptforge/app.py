import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .middleware.logging import JsonLoggerMiddleware
from .settings import get_settings
from .urls import ALL_ROUTERS

# ==========================================================
# LOGGING
# ==========================================================


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ==========================================================
# APP INIT
# ==========================================================


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(title=f"{settings.APP_NAME} API", debug=settings.DEBUG)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(JsonLoggerMiddleware)

    for router in ALL_ROUTERS:
        app.include_router(router)

    @app.get("/health")
    def health():
        return {"status": "ok", "app": settings.APP_NAME, "env": settings.ENV}

    return app


app = create_app()

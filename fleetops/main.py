# fleetops/main.py

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import fleetops.models  # noqa: F401  registers every table
from fleetops import __version__
from fleetops.bookings.router import router as bookings_router
from fleetops.core.config import settings
from fleetops.drivers.router import router as drivers_router
from fleetops.duties.router import router as duties_router
from fleetops.expenses.router import router as expenses_router
from fleetops.labels.router import router as labels_router
from fleetops.receivings.router import router as receivings_router
from fleetops.settlements.router import router as settlements_router
from fleetops.utils.logger import configure_logging, get_logger
from fleetops.wallets.router import router as wallets_router

configure_logging(settings.log_level, settings.log_json)
logger = get_logger(__name__)


def create_app() -> FastAPI:
    """Build the back office API."""
    app = FastAPI(title="Fleet Operations Back Office", version=__version__)

    origins = [url.strip() for url in settings.allowed_cors_urls.split(",") if url.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    for router in (
        drivers_router,
        bookings_router,
        labels_router,
        duties_router,
        expenses_router,
        receivings_router,
        settlements_router,
        wallets_router,
    ):
        app.include_router(router)

    @app.get("/health", tags=["Health"])
    def health():
        return {"status": "ok", "environment": settings.environment}

    logger.info("Application configured", environment=settings.environment)
    return app


app = create_app()

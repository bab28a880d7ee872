"""
FastAPI backend for the forecast wizard
"""
import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from forecast_wizard import __version__
from forecast_wizard.api import router
from forecast_wizard.schemas import HealthResponse
from forecast_wizard.settings import get_settings
from forecast_wizard.utils.logging_utils import configure_logging, log_route_io_middleware

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    configure_logging(get_settings().log_level)

    app = FastAPI(title="Forecast Wizard API", version=__version__)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    log_route_io_middleware(app)
    app.include_router(router)

    @app.get("/api/health", response_model=HealthResponse)
    async def health_check():
        return HealthResponse(status="healthy", version=__version__)

    logger.info(f"Forecast wizard API v{__version__} ready")
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("forecast_wizard.main:app", host="0.0.0.0", port=int(os.environ.get("PORT", 8000)), reload=True)

"""
TICKBRIDGE — Main Entry Point
Serves the market data API.
"""
import uvicorn
from tickbridge.config.settings import get_settings
from tickbridge.utils.logger import setup_logging, get_logger

logger = get_logger("main")


def run_api():
    """Run the FastAPI application."""
    settings = get_settings()
    setup_logging()
    logger.info("starting_tickbridge", version=settings.version, port=settings.port,
                api_configured=settings.provider.is_configured)
    uvicorn.run(
        "tickbridge.api.app:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    run_api()

"""HTTP server runner.

Run with: python -m services.api.server
Or: uvicorn services.api.main:app

This module configures logging and serves the API with uvicorn.
"""

import logging

import uvicorn

from services.shared.config import get_settings

logger = logging.getLogger(__name__)


def main() -> None:
    """Run the API server."""
    settings = get_settings()

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    logger.info(f"Starting {settings.service_name} {settings.service_version}")
    logger.info(f"Backend API: {settings.api_base_url or '(not configured)'}")

    uvicorn.run(
        "services.api.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()

"""Main entry point for the turn relay."""

from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from turnrelay.api import create_fastapi_app
from turnrelay.app import Application
from turnrelay.config import RelayConfig
from turnrelay.logging_config import get_logger, setup_logging


def main():
    """Run the application."""
    project_root = Path(__file__).resolve().parent.parent
    load_dotenv(project_root / ".env")
    setup_logging()

    config = RelayConfig.from_env()
    logger = get_logger(__name__)
    logger.info(
        "Server starting",
        extra={"context": {"host": config.host, "port": config.port, "env": config.environment}},
    )

    # Create FastAPI app
    app = create_fastapi_app(Application(config))

    # Run with uvicorn
    uvicorn.run(
        app,
        host=config.host,
        port=config.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()

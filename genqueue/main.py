"""Main application entry point."""

import logging

import structlog
import uvicorn

from genqueue.api.rest import create_app
from genqueue.config import get_settings
from genqueue.registry import QueueRegistry

logger = structlog.get_logger()


def configure_logging(level: str = "INFO"):
    """Route structlog through stdlib logging with JSON output."""
    logging.basicConfig(format="%(message)s", level=level.upper())
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def main():
    """Main function."""
    settings = get_settings()
    configure_logging(settings.log_level)

    registry = QueueRegistry.from_settings(settings)
    logger.info("Starting generation job queues", version="1.0.0", queues=registry.names())

    app = create_app(registry)
    uvicorn.run(app, host=settings.api_host, port=settings.api_port, log_config=None)


if __name__ == "__main__":
    main()

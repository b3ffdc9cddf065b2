"""ATR entry point."""

import logging

from atr.config import settings

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, settings.log_level),
)
logger = logging.getLogger(__name__)


def main() -> None:
    """Start the ingestion API."""
    from atr.api.server import run

    if not settings.anthropic_api_key:
        logger.warning("ANTHROPIC_API_KEY is empty — model calls will fail")

    logger.info("Starting ATR with model %s...", settings.extraction_model)
    run()


if __name__ == "__main__":
    main()

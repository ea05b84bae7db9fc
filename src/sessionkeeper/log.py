import sys

from loguru import logger

_initialized = False


def setup_logging(level: str = "INFO") -> None:
    global _initialized

    if _initialized:
        logger.warning("setup_logging() already called, skipping")
        return

    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
    )
    _initialized = True
    logger.debug(f"Logging initialized at level {level}")

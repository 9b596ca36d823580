import os
import sys
from loguru import logger


def config():
    """
    Configure the global Loguru logger. Keeps this function lightweight so it
    can be imported across the codebase without side-effects.
    """
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
    logger.remove()
    logger.add(
        sys.stdout,
        level=LOG_LEVEL,
        colorize=True,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
    )

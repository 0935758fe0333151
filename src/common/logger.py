"""
Logging setup for the display player.

Every player module obtains its logger through setup_logger(__name__) so the
whole process shares one format and one level, taken from SIGNAGE_LOG_LEVEL.
"""

import logging
import os
import sys
from typing import Optional


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def _resolve_level(level: Optional[str]) -> int:
    name = (level or os.environ.get('SIGNAGE_LOG_LEVEL', 'INFO')).upper()
    return getattr(logging, name, logging.INFO)


def setup_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """
    Get a logger with the player's stream handler attached.

    Args:
        name: Logger name, normally the module's __name__
        level: Level name; defaults to SIGNAGE_LOG_LEVEL or INFO

    Returns:
        Configured logging.Logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(_resolve_level(level))

    # Handlers are attached once per logger so re-imports do not duplicate lines
    if not any(getattr(h, '_signage_handler', False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._signage_handler = True
        logger.addHandler(handler)

    return logger

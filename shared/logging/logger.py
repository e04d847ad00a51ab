"""Logger helpers shared by the reporter modules.

``get_logger`` hands out stdlib loggers and, on first use, installs a
plain-text fallback configuration unless ``configure_logging`` already ran
or the host application configured the root logger itself.
"""

from __future__ import annotations

import logging

_FALLBACK_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_configured = False


def get_logger(name: str, auto_configure: bool = True) -> logging.Logger:
    """Get a logger, configuring a fallback handler on first use.

    Args:
        name: Logger name (usually the dotted module path)
        auto_configure: Whether to install the fallback configuration

    Returns:
        Logger instance that propagates to the root logger
    """
    global _configured

    if auto_configure and not _configured:
        _configure_minimal_logging()
        _configured = True

    logger = logging.getLogger(name)
    logger.propagate = True
    return logger


def _configure_minimal_logging():
    # A host application that already set up logging keeps its handlers
    if logging.getLogger().handlers:
        return
    logging.basicConfig(level=logging.INFO, format=_FALLBACK_FORMAT)


def is_configured() -> bool:
    return _configured


def mark_configured():
    """Mark logging as configured (called by shared.logging.json.configure_logging)."""
    global _configured
    _configured = True

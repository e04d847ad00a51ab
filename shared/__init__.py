"""Shared utilities used by the reporter and its tooling."""

from .config import BaseLoggingConfig

__all__ = [
    "BaseLoggingConfig",
]

"""
volume-broker utilities

Logging helpers.
"""

from volume_broker.utils.logger import (
    configure_logging,
    DEFAULT_FORMAT,
)

__all__ = [
    "configure_logging",
    "DEFAULT_FORMAT",
]

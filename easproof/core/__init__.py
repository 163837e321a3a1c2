"""easproof.core

Core primitives: configuration, errors, logging.

Everything else depends on this package. Nothing here imports the rest at load time.
"""

from .config import Config
from .exceptions import EasproofError
from .logging import configure_logging

__all__ = [
    "Config",
    "EasproofError",
    "configure_logging",
]

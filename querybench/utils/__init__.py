"""
Utilities package for querybench.

Exports shared helpers for cross-cutting concerns such as logging.
Keep this package lightweight and free of benchmark-specific logic.
"""

from querybench.utils.logging import configure_logging, get_logger

__all__ = [
    "configure_logging",
    "get_logger",
]

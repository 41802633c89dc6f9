"""
Utility tools for the event generator.

This module provides helper functions and decorators for:
- Performance monitoring (timing decorators)
- Logger setup for driver scripts
"""

import logging
from functools import wraps
from time import time

LOGGER = logging.getLogger(__name__)


def timer(func):
    """Decorator to measure and log function execution time.

    Parameters
    ----------
    func : callable
        The function to be timed

    Returns
    -------
    callable
        Wrapped function that logs its execution time at INFO level

    Examples
    --------
    >>> @timer
    ... def build_grid():
    ...     return "done"
    >>> result = build_grid()  # logs "func: 'build_grid' took: 0.0000 secs"
    """
    @wraps(func)
    def wrapper_timer(*args, **kwargs):
        start_time = time()
        value = func(*args, **kwargs)
        end_time = time()
        run_time = end_time - start_time
        LOGGER.info("func: %r took: %.4f secs", func.__name__, run_time)
        return value
    return wrapper_timer


def setup_logging(level=logging.INFO):
    """Configure root logging the way the command line drivers expect."""
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


__all__ = ['timer', 'setup_logging']

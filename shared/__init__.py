"""
MEALY Shared Module

Common utilities used across all services.
"""

from .utils import setup_logger, get_now

__all__ = [
    'setup_logger',
    'get_now',
]

"""
Core utilities and configuration for foundation-depot.

This package provides core functionality including logging configuration,
settings, database setup, and other shared utilities.
"""

from foundation_depot.core.logging_config import get_logger, setup_logging

__all__ = ["get_logger", "setup_logging"]

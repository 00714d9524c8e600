"""
Core utilities and configuration for the University ETL service.

This package provides foundational components used throughout the ETL engine:

Modules:
    config: Application configuration and environment variable management
    exceptions: Custom exception hierarchy for error handling
    logging: Logging configuration and utilities

Usage:
    from core.config import settings
    from core.exceptions import APIExtractionError, NetworkError
    from core.logging import setup_logging

Example:
    # Initialize logging
    setup_logging()

    # Read storage location
    print(settings.DATA_DIR)
"""

__all__ = [
    "settings",
    "setup_logging",
    # Exceptions
    "ETLException",
    "ExtractionError",
    "APIExtractionError",
    "NetworkError",
    "DataFormatError",
    "TransformationError",
    "ValidationError",
    "LoadError",
    "ConcurrencyError",
    "NotFoundError",
]

"""
Custom exceptions for the ETL engine with structured error context.

This module provides the exception hierarchy used by the extractor,
normalizer, loader and scheduler. Each exception carries context
information for debugging and for the run history.

Exception Hierarchy:
    ETLException (base)
    ├── ExtractionError
    │   ├── APIExtractionError
    │   │   └── NetworkError
    │   └── DataFormatError
    ├── TransformationError
    │   └── ValidationError
    ├── LoadError
    ├── ConcurrencyError
    └── NotFoundError
"""

from typing import Optional, Dict, Any
from datetime import datetime, timezone


class ETLException(Exception):
    """
    Base exception for all ETL-related errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (url, path, attempt, etc.)
        original_exception: The original exception that was caught (if any)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        self.message = message
        self.context = context or {}
        self.original_exception = original_exception
        self.timestamp = datetime.now(timezone.utc)

        # Add timestamp to context
        self.context["error_timestamp"] = self.timestamp.isoformat()

        # Chain original exception if provided
        super().__init__(message)
        if original_exception:
            self.__cause__ = original_exception

    def __str__(self) -> str:
        """Format error message with context."""
        base_msg = f"{self.__class__.__name__}: {self.message}"

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" | Context: {context_str}"

        if self.original_exception:
            base_msg += f" | Caused by: {type(self.original_exception).__name__}: {str(self.original_exception)}"

        return base_msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/storage."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "original_error": str(self.original_exception) if self.original_exception else None
        }


def error_message(exc: BaseException) -> str:
    """Plain message for an error, without the context decoration."""
    if isinstance(exc, ETLException):
        return exc.message
    return str(exc)


# ============================================================================
# Extraction Errors
# ============================================================================

class ExtractionError(ETLException):
    """Base exception for data extraction failures."""
    pass


class APIExtractionError(ExtractionError):
    """
    Exception raised when API data extraction fails.

    Context should include:
        - api_url: The API endpoint that failed
        - status_code: HTTP status code (if applicable)
        - retry_count: Number of attempts made
    """
    pass


class NetworkError(APIExtractionError):
    """No response was received (timeout, connection refused, DNS)."""
    pass


class DataFormatError(ExtractionError):
    """
    Exception raised when the response body has the wrong shape.

    Context should include:
        - api_url: The API endpoint
        - received_type: Type of the decoded payload
    """
    pass


# ============================================================================
# Transformation Errors
# ============================================================================

class TransformationError(ETLException):
    """Base exception for data transformation failures."""
    pass


class ValidationError(TransformationError):
    """
    Exception raised when a single record fails validation.

    Context should include:
        - record_index: Position of the record in the raw batch
        - field_name: Name of the field that failed validation
    """
    pass


# ============================================================================
# Load Errors
# ============================================================================

class LoadError(ETLException):
    """
    Exception raised when the primary snapshot cannot be written or read.

    Context should include:
        - path: File that failed
        - operation: write_json, write_csv, read
    """
    pass


# ============================================================================
# Scheduler / Read Path Errors
# ============================================================================

class ConcurrencyError(ETLException):
    """Raised when a manual run is requested while another run is in flight."""
    pass


class NotFoundError(ETLException):
    """Raised by read paths when no snapshot has been persisted yet."""
    pass

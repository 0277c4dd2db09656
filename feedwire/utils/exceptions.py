"""
Feedwire Custom Exceptions
=========================

Exception hierarchy for the ingestion engine with error codes, context
information and user-facing messages.

Granularity of the feed-level errors:
- FetchError / ParseError: one feed, recorded in that feed's result
- PersistError: one entry, recorded in the feed's result
- DedupCheckError: one entry, logged and treated as a duplicate
- AlreadyRunningError: surfaced to the caller of a trigger operation
"""

from typing import Optional, Dict, Any
from enum import Enum


class ErrorCode(str, Enum):
    """Error codes for categorizing exceptions."""

    # Configuration errors (C001-C099)
    CONFIG_INVALID = "C001"
    CONFIG_DUPLICATE_FEED = "C003"

    # Database errors (D001-D099)
    DATABASE_CONNECTION = "D001"
    DATABASE_CONSTRAINT = "D003"
    DATABASE_ERROR = "D006"

    # Feed ingestion errors (F001-F099)
    FEED_FETCH_TIMEOUT = "F002"
    FEED_PARSE_ERROR = "F003"
    FEED_NETWORK_ERROR = "F004"
    FEED_HTTP_ERROR = "F005"
    FEED_NOT_FOUND = "F006"

    # Import errors (I001-I099)
    PERSIST_FAILED = "I001"
    DEDUP_CHECK_FAILED = "I002"

    # Scheduler errors (S001-S099)
    IMPORT_ALREADY_RUNNING = "S001"

    # Validation errors (V001-V099)
    VALIDATION_REQUIRED_FIELD = "V001"
    VALIDATION_INVALID_FORMAT = "V002"
    VALIDATION_OUT_OF_RANGE = "V003"


class FeedwireError(Exception):
    """Base exception for all Feedwire errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        context: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
        recoverable: bool = False,
    ):
        """Initialize Feedwire error.

        Args:
            message: Technical error message for logging
            error_code: Categorized error code
            context: Additional context information
            user_message: User-friendly error message
            recoverable: Whether the error is recoverable
        """
        super().__init__(message)
        self.error_code = error_code
        self.context = context or {}
        self.user_message = user_message or message
        self.recoverable = recoverable

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code.value if self.error_code else None,
            "error_message": str(self),
            "user_message": self.user_message,
            "context": self.context,
            "recoverable": self.recoverable,
        }

    def __str__(self) -> str:
        """String representation with error code."""
        if self.error_code:
            return f"[{self.error_code.value}] {super().__str__()}"
        return super().__str__()


def _split_kwargs(kwargs: Dict[str, Any], *consumed: str) -> Dict[str, Any]:
    return {k: v for k, v in kwargs.items() if k not in consumed}


class ConfigurationError(FeedwireError):
    """Configuration-related errors."""

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        """Initialize configuration error.

        Args:
            message: Error message
            config_key: Configuration key that caused the error
            **kwargs: Additional arguments for FeedwireError
        """
        context = kwargs.get("context", {})
        if config_key:
            context["config_key"] = config_key

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.CONFIG_INVALID),
            context=context,
            user_message=kwargs.get("user_message", f"Configuration error: {message}"),
            **_split_kwargs(kwargs, "context", "error_code", "user_message"),
        )


class ValidationError(FeedwireError):
    """Input validation errors."""

    def __init__(self, message: str, field_name: Optional[str] = None, **kwargs):
        context = kwargs.get("context", {})
        if field_name:
            context["field_name"] = field_name

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.VALIDATION_INVALID_FORMAT),
            context=context,
            user_message=kwargs.get(
                "user_message", f"Invalid {field_name or 'input'}: {message}"
            ),
            recoverable=kwargs.get("recoverable", False),
            **_split_kwargs(kwargs, "context", "error_code", "user_message", "recoverable"),
        )


class DatabaseError(FeedwireError):
    """Database-related errors."""

    def __init__(self, message: str, query: Optional[str] = None, **kwargs):
        context = kwargs.get("context", {})
        if query:
            context["query"] = query

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.DATABASE_CONNECTION),
            context=context,
            user_message=kwargs.get("user_message", "Database operation failed"),
            recoverable=kwargs.get("recoverable", True),
            **_split_kwargs(kwargs, "context", "error_code", "user_message", "recoverable"),
        )


class FeedError(FeedwireError):
    """Feed retrieval and parsing errors."""

    def __init__(self, message: str, feed_url: Optional[str] = None, **kwargs):
        """Initialize feed error.

        Args:
            message: Error message
            feed_url: Feed URL that caused the error
            **kwargs: Additional arguments for FeedwireError
        """
        context = kwargs.get("context", {})
        if feed_url:
            context["feed_url"] = feed_url

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.FEED_NETWORK_ERROR),
            context=context,
            user_message=kwargs.get(
                "user_message", f"Feed processing failed: {message}"
            ),
            recoverable=kwargs.get("recoverable", True),
            **_split_kwargs(kwargs, "context", "error_code", "user_message", "recoverable"),
        )


class FetchError(FeedError):
    """Network failure, bad HTTP status or timeout while retrieving a feed."""

    pass


class ParseError(FeedError):
    """Retrieved document cannot be interpreted as a feed."""

    def __init__(self, message: str, feed_url: Optional[str] = None, **kwargs):
        kwargs.setdefault("error_code", ErrorCode.FEED_PARSE_ERROR)
        kwargs.setdefault("recoverable", False)
        super().__init__(message, feed_url=feed_url, **kwargs)


class FeedNotFoundError(FeedwireError):
    """Feed name is not present in the registry."""

    def __init__(self, feed_name: str, **kwargs):
        super().__init__(
            message=f"Unknown feed: {feed_name}",
            error_code=ErrorCode.FEED_NOT_FOUND,
            context={"feed_name": feed_name},
            user_message=f"No feed named '{feed_name}' is configured",
            **kwargs,
        )
        self.feed_name = feed_name


class PersistError(FeedwireError):
    """Storage failure while writing or deleting imported articles."""

    def __init__(
        self,
        message: str,
        feed_name: Optional[str] = None,
        external_id: Optional[str] = None,
        **kwargs,
    ):
        context = kwargs.get("context", {})
        if feed_name:
            context["feed_name"] = feed_name
        if external_id:
            context["external_id"] = external_id

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.PERSIST_FAILED),
            context=context,
            user_message=kwargs.get("user_message", "Saving imported article failed"),
            recoverable=kwargs.get("recoverable", True),
            **_split_kwargs(kwargs, "context", "error_code", "user_message", "recoverable"),
        )


class DedupCheckError(FeedwireError):
    """Existence check against the article store failed."""

    def __init__(self, message: str, feed_name: str, external_id: str, **kwargs):
        super().__init__(
            message=message,
            error_code=ErrorCode.DEDUP_CHECK_FAILED,
            context={"feed_name": feed_name, "external_id": external_id},
            recoverable=True,
            **kwargs,
        )


class AlreadyRunningError(FeedwireError):
    """An import batch is already executing."""

    def __init__(self, message: str = "An import batch is already in progress", **kwargs):
        super().__init__(
            message=message,
            error_code=ErrorCode.IMPORT_ALREADY_RUNNING,
            user_message="Import already running, try again once it has finished",
            recoverable=True,
            **kwargs,
        )


# Exception handling utilities


def handle_exception(
    exception: Exception,
    logger,
    operation: str,
    context: Optional[Dict[str, Any]] = None,
) -> FeedwireError:
    """Convert generic exceptions to Feedwire exceptions with proper logging.

    Args:
        exception: Original exception
        logger: Logger instance for error logging
        operation: Operation that was being performed
        context: Additional context information

    Returns:
        Feedwire exception with proper categorization
    """
    context = context or {}
    context["operation"] = operation
    context["original_exception_type"] = type(exception).__name__

    if isinstance(exception, FeedwireError):
        logger.error(f"Operation '{operation}' failed", extra=exception.to_dict())
        return exception

    elif isinstance(exception, (ConnectionError, TimeoutError)):
        error = FeedwireError(
            message=f"Network error during {operation}: {str(exception)}",
            error_code=ErrorCode.FEED_NETWORK_ERROR,
            context=context,
            user_message="Network connection failed",
            recoverable=True,
        )

    else:
        error = FeedwireError(
            message=f"Unexpected error during {operation}: {str(exception)}",
            context=context,
            user_message="An unexpected error occurred",
            recoverable=True,
        )

    logger.error(f"Operation '{operation}' failed", extra=error.to_dict())
    return error


def is_retryable_error(exception: FeedwireError) -> bool:
    """Check if an error is worth retrying."""
    if not exception.recoverable:
        return False

    retryable_codes = {
        ErrorCode.FEED_NETWORK_ERROR,
        ErrorCode.FEED_FETCH_TIMEOUT,
        ErrorCode.DATABASE_CONNECTION,
        ErrorCode.PERSIST_FAILED,
    }

    return exception.error_code in retryable_codes

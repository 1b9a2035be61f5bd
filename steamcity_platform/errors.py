"""
Error handling system for the SteamCity platform.

This module provides the error taxonomy raised by the query and storage layers,
plus classification, logging and recovery strategies for errors encountered
while serving collection data.
"""

import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from dataclasses import dataclass, field
from datetime import datetime


class ErrorCategory(Enum):
    """Categories of errors that can occur in the system."""
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    ACCESS = "access"
    STORAGE = "storage"
    DATA = "data"
    CONFIGURATION = "configuration"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorAction(Enum):
    """What the caller should do after an error."""
    FAIL = "fail"
    SKIP = "skip"
    FALLBACK = "fallback"
    LOG_AND_CONTINUE = "log_and_continue"


@dataclass
class ErrorContext:
    """Where an error happened: operation, collection, record and request."""
    operation: str
    collection: Optional[str] = None
    entity_id: Optional[str] = None
    file_path: Optional[str] = None
    request_path: Optional[str] = None
    request_params: Optional[Dict[str, Any]] = None
    timestamp: datetime = field(default_factory=datetime.now)
    additional_data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ErrorInfo:
    """Classification result for one error occurrence."""
    category: ErrorCategory
    severity: ErrorSeverity
    action: ErrorAction
    message: str
    original_exception: Exception
    context: ErrorContext
    recovery_suggestions: List[str] = field(default_factory=list)


class PlatformError(Exception):
    """
    Base exception class for SteamCity platform errors.

    Subclasses fix the category, default severity and the HTTP status the
    API answers with.
    """

    category_default = ErrorCategory.UNKNOWN
    severity_default = ErrorSeverity.MEDIUM
    status_code = 500

    def __init__(
        self,
        message: str,
        category: Optional[ErrorCategory] = None,
        severity: Optional[ErrorSeverity] = None,
        context: Optional[ErrorContext] = None,
        original_exception: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.category_default
        self.severity = severity or self.severity_default
        self.context = context or ErrorContext(operation="unknown")
        self.original_exception = original_exception


class InvalidArgumentError(PlatformError):
    """A required parameter is missing or a parameter value is unusable."""

    category_default = ErrorCategory.VALIDATION
    severity_default = ErrorSeverity.LOW
    status_code = 400

    def __init__(self, message: str, parameter: Optional[str] = None, context: Optional[ErrorContext] = None):
        super().__init__(message, context=context)
        self.parameter = parameter


class NotFoundError(PlatformError):
    """A referenced entity id has no matching record."""

    category_default = ErrorCategory.NOT_FOUND
    severity_default = ErrorSeverity.LOW
    status_code = 404

    def __init__(self, message: str, entity_type: Optional[str] = None,
                 entity_id: Optional[Any] = None, context: Optional[ErrorContext] = None):
        super().__init__(message, context=context)
        self.entity_type = entity_type
        self.entity_id = entity_id


class AccessDeniedError(PlatformError):
    """The record exists but is not publicly visible."""

    category_default = ErrorCategory.ACCESS
    severity_default = ErrorSeverity.LOW
    status_code = 403


class StorageError(PlatformError):
    """A collection file could not be read or written."""

    category_default = ErrorCategory.STORAGE
    severity_default = ErrorSeverity.HIGH


class DataError(PlatformError):
    """A record, payload or uploaded file is malformed."""

    category_default = ErrorCategory.DATA
    status_code = 400


class ConfigurationError(PlatformError):
    category_default = ErrorCategory.CONFIGURATION
    severity_default = ErrorSeverity.CRITICAL


ACTIONS = {
    ErrorCategory.STORAGE: ErrorAction.FALLBACK,
    ErrorCategory.DATA: ErrorAction.SKIP,
    ErrorCategory.VALIDATION: ErrorAction.FAIL,
    ErrorCategory.NOT_FOUND: ErrorAction.FAIL,
    ErrorCategory.ACCESS: ErrorAction.FAIL,
    ErrorCategory.CONFIGURATION: ErrorAction.FAIL,
}

RECOVERY_SUGGESTIONS = {
    ErrorCategory.VALIDATION: [
        "Check required query parameters",
        "Verify parameter types and allowed values"
    ],
    ErrorCategory.NOT_FOUND: [
        "Verify the identifier exists in the collection",
        "Regenerate sample data if the collection is empty"
    ],
    ErrorCategory.ACCESS: [
        "Request public experiments only",
        "Pass includePrivate when listing experiments"
    ],
    ErrorCategory.STORAGE: [
        "Check the data directory exists and is readable",
        "Verify collection file names in the storage configuration",
        "Run the generate command to recreate sample data"
    ],
    ErrorCategory.DATA: [
        "Validate collection files contain a JSON array",
        "Check for missing required fields",
        "Verify data encoding is UTF-8"
    ],
    ErrorCategory.CONFIGURATION: [
        "Verify configuration file format and syntax",
        "Review environment variable settings"
    ],
}

# Logger method used for each severity
_LOG_METHODS = {
    ErrorSeverity.CRITICAL: "critical",
    ErrorSeverity.HIGH: "error",
    ErrorSeverity.MEDIUM: "warning",
    ErrorSeverity.LOW: "info",
}


class ErrorHandler:
    """
    Error handler with classification and recovery strategies.

    Every handled error is logged at a level matching its severity and
    counted under "<category>:<operation>".
    """

    def __init__(self):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self._error_counts: Dict[str, int] = {}

    def classify_error(self, exception: Exception, context: ErrorContext) -> ErrorInfo:
        """
        Classify an exception and determine appropriate handling strategy.

        Args:
            exception: The exception to classify
            context: Contextual information about the error

        Returns:
            ErrorInfo with classification and recommended action
        """
        if isinstance(exception, PlatformError):
            category, severity, message = exception.category, exception.severity, exception.message
        else:
            category, severity = self._classify_standard_exception(exception)
            message = str(exception)

        return ErrorInfo(
            category=category,
            severity=severity,
            action=ACTIONS.get(category, ErrorAction.LOG_AND_CONTINUE),
            message=message,
            original_exception=exception,
            context=context,
            recovery_suggestions=RECOVERY_SUGGESTIONS.get(category, ["Review error details and system logs"])
        )

    @staticmethod
    def _classify_standard_exception(exception: Exception) -> Tuple[ErrorCategory, ErrorSeverity]:
        if isinstance(exception, (FileNotFoundError, PermissionError)) and 'config' in str(exception).lower():
            return ErrorCategory.CONFIGURATION, ErrorSeverity.CRITICAL

        # Missing files degrade to empty collections
        if isinstance(exception, FileNotFoundError):
            return ErrorCategory.STORAGE, ErrorSeverity.LOW
        if isinstance(exception, OSError):
            return ErrorCategory.STORAGE, ErrorSeverity.HIGH

        # JSONDecodeError, UnicodeDecodeError and pydantic's ValidationError are ValueErrors
        if isinstance(exception, (ValueError, KeyError, TypeError)):
            return ErrorCategory.DATA, ErrorSeverity.MEDIUM

        return ErrorCategory.UNKNOWN, ErrorSeverity.MEDIUM

    def handle_error(self, exception: Exception, context: ErrorContext) -> ErrorInfo:
        """Classify, count and log an error; returns the classification."""
        error_info = self.classify_error(exception, context)

        key = f"{error_info.category.value}:{context.operation}"
        self._error_counts[key] = self._error_counts.get(key, 0) + 1

        self._log_error(error_info)
        return error_info

    def _log_error(self, error_info: ErrorInfo) -> None:
        context = error_info.context
        log_data = {
            "error_category": error_info.category.value,
            "error_severity": error_info.severity.value,
            "recommended_action": error_info.action.value,
            "operation": context.operation,
            "collection": context.collection,
            "entity_id": context.entity_id,
            "file_path": context.file_path,
            "request_path": context.request_path,
            "error_timestamp": context.timestamp.isoformat(),
            "exception_type": type(error_info.original_exception).__name__,
            "recovery_suggestions": error_info.recovery_suggestions,
            **context.additional_data
        }

        log = getattr(self.logger, _LOG_METHODS[error_info.severity])
        log("%s error in %s: %s", error_info.category.value, context.operation,
            error_info.message, extra=log_data)

    def get_error_statistics(self) -> Dict[str, int]:
        return dict(self._error_counts)

    def reset_error_statistics(self) -> None:
        self._error_counts.clear()


_error_handler: Optional[ErrorHandler] = None


def get_error_handler() -> ErrorHandler:
    """Get the global error handler instance."""
    global _error_handler
    if _error_handler is None:
        _error_handler = ErrorHandler()
    return _error_handler


def set_error_handler(handler: Optional[ErrorHandler]) -> None:
    global _error_handler
    _error_handler = handler


def handle_error(exception: Exception, context: ErrorContext) -> ErrorInfo:
    """Handle an error using the global error handler."""
    return get_error_handler().handle_error(exception, context)


def create_error_context(
    operation: str,
    collection: Optional[str] = None,
    entity_id: Optional[str] = None,
    file_path: Optional[str] = None,
    request_path: Optional[str] = None,
    request_params: Optional[Dict[str, Any]] = None,
    **additional_data
) -> ErrorContext:
    """
    Convenience function to create error context.

    Args:
        operation: Name of the operation being performed
        collection: Collection kind being accessed
        entity_id: ID of the entity being processed
        file_path: Backing file of the collection
        request_path: HTTP path of the request that failed
        request_params: Query parameters of the request
        **additional_data: Additional contextual data
    """
    return ErrorContext(
        operation=operation,
        collection=collection,
        entity_id=entity_id,
        file_path=file_path,
        request_path=request_path,
        request_params=request_params,
        additional_data=additional_data
    )

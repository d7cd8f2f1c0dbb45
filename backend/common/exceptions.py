"""
Common Exception Classes

This module defines the exception taxonomy shared by the exam engine,
its persistence adapters and the HTTP layer.
"""

from typing import Optional, Any


class BaseError(Exception):
    """Base class for all custom exceptions."""

    def __init__(self, message: str, original_exception: Optional[Exception] = None):
        """
        Initialize the exception.

        Args:
            message: Error message
            original_exception: Original exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.original_exception = original_exception


class NotFoundError(BaseError):
    """Exception raised when a room, participant or question is not found."""

    def __init__(self, resource_type: str, resource_id: Any, message: Optional[str] = None):
        """
        Initialize the not found error.

        Args:
            resource_type: Type of resource that wasn't found
            resource_id: ID of the resource that wasn't found
            message: Optional message overriding the default one
        """
        super().__init__(message or f"{resource_type} with ID {resource_id} not found")
        self.resource_type = resource_type
        self.resource_id = resource_id


class InvalidQuestionError(NotFoundError):
    """Exception raised when a submitted question id cannot be served or graded."""

    def __init__(self, question_id: Any, reason: str = "does not exist"):
        super().__init__(
            "Question",
            question_id,
            message=f"Invalid question {question_id}: {reason}",
        )
        self.reason = reason


class InvalidStateError(BaseError):
    """Exception raised when an operation is not allowed in the current state."""

    def __init__(self, message: str, state: Optional[str] = None):
        """
        Initialize the invalid state error.

        Args:
            message: Error message
            state: The offending state value, if any
        """
        super().__init__(message)
        self.state = state


class DataAccessError(BaseError):
    """Exception raised when the backing store fails."""

    def __init__(self, message: str, original_exception: Optional[Exception] = None):
        super().__init__(f"Data access error: {message}", original_exception)


class ValidationError(BaseError):
    """Exception raised for malformed operation input."""

    def __init__(self, message: str, errors: Optional[dict] = None):
        """
        Initialize the validation error.

        Args:
            message: Error message
            errors: Dictionary of validation errors
        """
        super().__init__(f"Validation error: {message}")
        self.errors = errors or {}


class ConfigurationError(BaseError):
    """Exception raised for configuration-related errors."""

    def __init__(self, message: str, config_key: Optional[str] = None):
        """
        Initialize the configuration error.

        Args:
            message: Error message
            config_key: The configuration key that caused the error
        """
        super().__init__(f"Configuration error: {message}")
        self.config_key = config_key

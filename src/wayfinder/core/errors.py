"""
Custom exception hierarchy for Wayfinder.

Expected search outcomes (missing endpoints, unreachable targets, skipped
geometry) are returned as data. These exceptions only signal contract
violations by the caller.
"""

from typing import Any, Dict, List, Optional


class WayfinderException(Exception):
    """
    Base exception for all Wayfinder-specific errors.

    Attributes:
        error_code: String identifier for the error type
        message: User-friendly error message
        details: Technical details for logging/debugging
        suggestions: Optional list of resolution suggestions
    """

    def __init__(
        self,
        message: str,
        error_code: str,
        details: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
    ):
        """
        Initialize WayfinderException.

        Args:
            message: User-friendly error message
            error_code: String identifier for the error type
            details: Technical details for logging
            suggestions: List of suggestions for resolution
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.suggestions = suggestions or []

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to a plain dictionary.

        Returns:
            Dictionary representation of the error
        """
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "suggestions": self.suggestions,
        }

    def __str__(self) -> str:
        """String representation of the exception."""
        return f"{self.error_code}: {self.message}"

    def __repr__(self) -> str:
        """Detailed string representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"error_code='{self.error_code}', "
            f"message='{self.message}')"
        )


class ValidationError(WayfinderException):
    """
    Raised when caller input is invalid.

    Used for unknown algorithm names, unknown obstacle kinds, grid
    coordinates outside the grid and similar contract violations.
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
    ):
        """
        Initialize ValidationError.

        Args:
            message: User-friendly error message
            field: Name of the field that failed validation
            details: Technical details about the validation failure
            suggestions: List of suggestions for fixing the validation error
        """
        error_details = details or {}
        if field:
            error_details["field"] = field

        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            details=error_details,
            suggestions=suggestions or ["Check the input format and try again"],
        )

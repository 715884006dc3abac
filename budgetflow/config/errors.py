"""BudgetFlow error handling.

Custom exceptions and error codes for the wizard, comparison and gateway layers.
"""

from typing import Optional, Dict, Any


# Error Codes
class ErrorCode:
    """Error code constants."""

    # Selection Errors
    SELECTION_LIMIT_EXCEEDED = "SELECTION_LIMIT_EXCEEDED"
    SELECTION_TOO_SMALL = "SELECTION_TOO_SMALL"

    # Comparison Errors
    NO_COMPARISON = "NO_COMPARISON"

    # Gateway Errors
    GATEWAY_HTTP_ERROR = "GATEWAY_HTTP_ERROR"
    GATEWAY_CONNECTION_ERROR = "GATEWAY_CONNECTION_ERROR"
    GATEWAY_TIMEOUT = "GATEWAY_TIMEOUT"
    GATEWAY_INVALID_RESPONSE = "GATEWAY_INVALID_RESPONSE"

    # Programmer errors
    INVARIANT_VIOLATION = "INVARIANT_VIOLATION"


class BudgetFlowError(Exception):
    """Base exception for BudgetFlow errors.

    Provides structured error information that can be rendered by a caller.

    Attributes:
        code: Error code from ErrorCode constants
        message: Human-readable error message
        details: Additional error context
    """

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary.

        Returns:
            Dictionary with code, message, and details.
        """
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class SelectionError(BudgetFlowError):
    """Comparison selection error (bound exceeded, too few budgets)."""

    @classmethod
    def limit_exceeded(cls, max_size: int) -> "SelectionError":
        return cls(
            code=ErrorCode.SELECTION_LIMIT_EXCEEDED,
            message=f"Cannot add more than {max_size} budgets to a comparison",
            details={"max_size": max_size}
        )

    @classmethod
    def too_small(cls, min_size: int = 2) -> "SelectionError":
        return cls(
            code=ErrorCode.SELECTION_TOO_SMALL,
            message=f"Select at least {min_size} budgets to compare",
            details={"min_size": min_size}
        )


class ComparisonError(BudgetFlowError):
    """Operation on a comparison that does not exist yet."""

    @classmethod
    def missing(cls, operation: str = "export") -> "ComparisonError":
        return cls(
            code=ErrorCode.NO_COMPARISON,
            message=f"There is no comparison to {operation}",
            details={"operation": operation}
        )


class GatewayError(BudgetFlowError):
    """Remote gateway error."""

    def __init__(
        self,
        code: str,
        message: str,
        operation: str,
        status_code: Optional[int] = None,
        details: Optional[Dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            details={**(details or {}), "operation": operation, "status_code": status_code}
        )
        self.operation = operation
        self.status_code = status_code


class InvariantViolation(BudgetFlowError):
    """Programmer error: internal state broke one of its invariants."""

    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(code=ErrorCode.INVARIANT_VIOLATION, message=message, details=details)

"""
Error taxonomy for test-design loading and the optimizer contract.

Every error here is raised synchronously at the point of parsing or
construction and is never retried. A driver that receives one of them is
expected to abort loading the test design rather than continue with a
partially built configuration.
"""

from typing import Any, Dict, Optional


class AssemblyError(Exception):
    """Base class for shadow-test assembly errors."""

    def __init__(
        self,
        message: str,
        original_error: Optional[Exception] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        """Initialize with message, optional cause, and structured context."""
        self.message = message
        self.original_error = original_error
        self.context = context or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with context."""
        msg = self.message
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            msg = f"{msg} (context: {ctx_str})"
        if self.original_error:
            msg = f"{msg} - caused by: {str(self.original_error)}"
        return msg


class ColumnNotFound(AssemblyError):
    """A required column name is absent from a table header."""


class NumericFieldError(AssemblyError):
    """Text in a numeric field could not be parsed as a number."""


class FilterArityMismatch(AssemblyError):
    """FilterAttr, FilterLogic and FilterData do not line up."""


class UnknownFilterLogic(AssemblyError):
    """A filter logic token is neither ``Bounds`` nor ``Set``."""


class DuplicateFilterAttribute(AssemblyError):
    """The same attribute is filtered more than once in a constraint row."""


class UnknownSolverStatus(AssemblyError):
    """The optimizer reported a status code outside the fixed table."""


class InvalidConfiguration(AssemblyError):
    """A test assembly configuration failed validation."""


class InconsistentSolverOutput(AssemblyError):
    """Selected identifiers and row indices are not index-aligned."""


class UnsupportedPayloadVersion(AssemblyError):
    """A solver payload carries a schema version this package cannot read."""


class InfeasibleTestConfigError(AssemblyError):
    """The optimizer proved the shadow test infeasible under current constraints."""

"""
Custom Exception Hierarchy

Provides specific exception types for the error categories of the
decision-support pipeline, each carrying structured error information.
"""
from typing import Optional, Dict, Any


class ClinicalDecisionError(Exception):
    """Base exception for all decision-support errors."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details
        }


class ValidationError(ClinicalDecisionError):
    """User-correctable input problems that block a workflow step."""

    def __init__(
        self,
        message: str,
        field: str = "unknown",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            details={"field": field, **(details or {})}
        )
        self.field = field


class WorkflowStateError(ClinicalDecisionError):
    """A transition or edit requested from a state that does not allow it."""

    def __init__(
        self,
        message: str,
        state: str = "unknown",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="WORKFLOW_STATE_ERROR",
            details={"state": state, **(details or {})}
        )
        self.state = state


class ReferenceDataError(ClinicalDecisionError):
    """Malformed reference tables (catalog, profiles, guidelines)."""

    def __init__(
        self,
        message: str,
        table: str = "unknown",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="REFERENCE_DATA_ERROR",
            details={"table": table, **(details or {})}
        )
        self.table = table


class ExternalServiceError(ClinicalDecisionError):
    """I/O failure talking to an external collaborator. Always retryable."""

    def __init__(
        self,
        message: str,
        operation: str = "unknown",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="EXTERNAL_SERVICE_ERROR",
            details={"operation": operation, "retryable": True, **(details or {})}
        )
        self.operation = operation
        self.retryable = True


class SessionNotFoundError(ClinicalDecisionError):
    """Unknown diagnosis session id."""

    def __init__(self, session_id: str):
        super().__init__(
            message=f"Session {session_id} not found",
            code="SESSION_NOT_FOUND",
            details={"session_id": session_id}
        )
        self.session_id = session_id

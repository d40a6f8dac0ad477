"""
Utilities Package - Logging and Exception Handling
"""
from .logging import get_logger, get_session_logger, setup_logging
from .exceptions import (
    ClinicalDecisionError,
    ValidationError,
    WorkflowStateError,
    ReferenceDataError,
    ExternalServiceError,
    SessionNotFoundError,
)

__all__ = [
    "get_logger",
    "get_session_logger",
    "setup_logging",
    "ClinicalDecisionError",
    "ValidationError",
    "WorkflowStateError",
    "ReferenceDataError",
    "ExternalServiceError",
    "SessionNotFoundError",
]

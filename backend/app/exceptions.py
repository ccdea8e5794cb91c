"""
Structured exceptions and error responses for agentcomm.

Every failure the dependency graph and task store can raise maps onto one
of these classes; the FastAPI handler renders them as

    {"error": <error_code>, "message": <text>, "details": [...] | null}
"""

from typing import Any, Dict, Optional, List
from fastapi import Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from app.logging_config import get_logger

logger = get_logger(__name__)


# =============================================================================
# Error Response Schema
# =============================================================================

class ErrorDetail(BaseModel):
    """Detail of a single error."""
    loc: Optional[List[str]] = None
    msg: str
    type: str


class ErrorResponse(BaseModel):
    """Structured error response format."""
    error: str  # Error code (e.g., "not_found", "cyclic_dependency")
    message: str
    details: Optional[List[ErrorDetail]] = None


# =============================================================================
# Custom Exceptions
# =============================================================================

class AgentCommException(Exception):
    """Base exception for all agentcomm errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "internal_error",
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[List[Dict[str, Any]]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class InvalidArgumentError(AgentCommException):
    """Malformed input, e.g. a task asked to depend on itself."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(
            message=message,
            error_code="invalid_argument",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=[{
                "loc": ["body", field] if field else ["body"],
                "msg": message,
                "type": "invalid_argument",
            }],
        )
        self.field = field


class SelfDependencyError(InvalidArgumentError):
    """Task cannot depend on itself."""

    def __init__(self, task_id: Any):
        super().__init__(f"Task {task_id} cannot depend on itself", field="depends_on_task_id")
        self.task_id = task_id


class NotFoundError(AgentCommException):
    """Referenced task or dependency does not exist."""

    def __init__(self, resource: str, resource_id: Any):
        super().__init__(
            message=f"{resource} with ID {resource_id} not found",
            error_code="not_found",
            status_code=status.HTTP_404_NOT_FOUND,
        )
        self.resource = resource
        self.resource_id = resource_id


class CyclicDependencyError(AgentCommException):
    """Adding a dependency would close a cycle."""

    def __init__(self, task_id: Any, depends_on_task_id: Any):
        super().__init__(
            message="Adding this dependency would create a circular dependency",
            error_code="cyclic_dependency",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=[{
                "loc": ["body"],
                "msg": (
                    f"Task {depends_on_task_id} already depends on task {task_id}, "
                    f"directly or transitively"
                ),
                "type": "cycle_error",
            }],
        )
        self.task_id = task_id
        self.depends_on_task_id = depends_on_task_id


class ConflictError(AgentCommException):
    """Resource already exists."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            error_code="conflict",
            status_code=status.HTTP_409_CONFLICT,
        )


class DuplicateDependencyError(ConflictError):
    """Dependency already exists."""

    def __init__(self, task_id: Any, depends_on_task_id: Any):
        super().__init__(f"Task {task_id} already depends on task {depends_on_task_id}")
        self.task_id = task_id
        self.depends_on_task_id = depends_on_task_id


class StorageUnavailableError(AgentCommException):
    """The underlying store could not serve the request."""

    def __init__(self, message: str = "Storage is unavailable"):
        super().__init__(
            message=message,
            error_code="storage_unavailable",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )


# =============================================================================
# Exception Handlers
# =============================================================================

async def agentcomm_exception_handler(request: Request, exc: AgentCommException) -> JSONResponse:
    """Handle AgentCommException and return structured response."""
    body = ErrorResponse(error=exc.error_code, message=exc.message, details=exc.details)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.exception(f"Unhandled exception: {exc}")

    body = ErrorResponse(error="internal_error", message="An unexpected error occurred")
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body.model_dump())


def register_exception_handlers(app):
    """Register all exception handlers with the FastAPI app."""
    app.add_exception_handler(AgentCommException, agentcomm_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

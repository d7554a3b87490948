"""
Domain errors raised by services.

Each error carries the HTTP status and the machine-readable type code used in the
standard error envelope. The API layer maps them with a single exception handler,
so services never import FastAPI.
"""

from __future__ import annotations

from typing import Any, Optional


class KarigarError(Exception):
    """Base class for expected business errors."""

    status_code: int = 400
    error_type: str = "bad_request"

    def __init__(self, message: str, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class NotFoundError(KarigarError):
    status_code = 404
    error_type = "not_found"

    def __init__(self, entity: str, key: Any) -> None:
        super().__init__(f"{entity} not found", details={"entity": entity, "key": str(key)})


class ValidationFailed(KarigarError):
    """Business validation failure (e.g. empty cart, non-positive quantity)."""

    status_code = 422
    error_type = "validation_failed"


class ConflictError(KarigarError):
    status_code = 409
    error_type = "conflict"


class InvalidTransition(ConflictError):
    """A status or stage change outside the allowed transitions."""

    error_type = "invalid_transition"

    def __init__(self, entity: str, current: str, target: str) -> None:
        super().__init__(
            f"{entity} cannot move from '{current}' to '{target}'",
            details={"entity": entity, "from": current, "to": target},
        )


class AssignmentRequired(ConflictError):
    """Moving a Kanban card into a worker stage needs an assignment first."""

    error_type = "assignment_required"

    def __init__(self, stage: str) -> None:
        super().__init__(
            f"Stage '{stage}' requires a worker assignment",
            details={"stage": stage},
        )
        self.stage = stage


class InsufficientStock(ConflictError):
    error_type = "insufficient_stock"

    def __init__(self, what: str, available: float, requested: float) -> None:
        super().__init__(
            f"Insufficient stock for {what}",
            details={"available": available, "requested": requested},
        )

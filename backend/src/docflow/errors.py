"""Error taxonomy for the document lifecycle engine.

Every failure the engine reports to a caller is one of these exceptions.
The HTTP layer maps them to status codes in main.py; services never raise
HTTPException themselves.

    ValidationError     malformed input, recoverable by the caller      -> 422
    PermissionDenied    role/permission/branch gate failed              -> 403
    NotFound            entity absent                                   -> 404
    InvalidTransition   status edge not permitted from current state    -> 400
    Conflict            duplicate name, protected role, lost race       -> 409
    DependencyFailure   persistence or notification collaborator down   -> 503
"""

from typing import Any, Dict, List, Optional


class DocflowError(Exception):
    """Base class for all engine errors."""

    code = "docflow_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(DocflowError):
    """Raised for malformed input (field-level)."""

    code = "validation_error"

    def __init__(
        self,
        message: str,
        field_errors: Optional[Dict[str, List[str]]] = None,
    ):
        super().__init__(message, {"fields": field_errors} if field_errors else None)
        self.field_errors = field_errors or {}


class PermissionDenied(DocflowError):
    """Raised when a role, permission, or branch gate rejects the caller."""

    code = "permission_denied"

    def __init__(self, message: str, user_id: Optional[int] = None, **details: Any):
        if user_id is not None:
            details["user_id"] = user_id
        super().__init__(message, details or None)
        self.user_id = user_id


class NotFound(DocflowError):
    """Raised when a requested entity does not exist."""

    code = "not_found"

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(f"{entity} {entity_id} not found", {"entity": entity, "id": entity_id})
        self.entity = entity
        self.entity_id = entity_id


class InvalidTransition(DocflowError):
    """Raised when a status change is not a direct edge of the transition graph."""

    code = "invalid_transition"

    def __init__(self, current_status: str, target_status: str, allowed: List[str]):
        super().__init__(
            f"Invalid transition: {current_status} -> {target_status}. "
            f"Allowed transitions from {current_status}: {allowed}",
            {"from": current_status, "to": target_status, "allowed": allowed},
        )
        self.current_status = current_status
        self.target_status = target_status
        self.allowed = allowed


class Conflict(DocflowError):
    """Raised for duplicate names, protected-role deletion and lost status races."""

    code = "conflict"


class DependencyFailure(DocflowError):
    """Raised when an external collaborator (store, notifier) is unavailable."""

    code = "dependency_failure"

    def __init__(self, dependency: str, cause: Optional[BaseException] = None):
        message = f"Dependency unavailable: {dependency}"
        super().__init__(message, {"dependency": dependency})
        self.dependency = dependency
        self.cause = cause

"""Service-layer error taxonomy.

Services raise these; the API layer maps each kind onto an HTTP status in
one exception handler (see ``backoffice.main``).
"""
from typing import Any, Dict, Optional


class ServiceError(Exception):
    """Base class for errors raised by the back-office services."""

    status_code = 500
    error = "Internal Error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.error, "message": self.message, "details": self.details}


class ValidationError(ServiceError):
    """Malformed, missing or out-of-range input."""
    status_code = 400
    error = "Validation Error"


class NotFoundError(ServiceError):
    """A referenced entity does not exist in the business."""
    status_code = 404
    error = "Not Found"


class InvalidTransitionError(ServiceError):
    """Requested status change is not in the entity's transition table."""
    status_code = 400
    error = "Invalid Transition"

    def __init__(self, entity: str, source: str, target: str, allowed: Optional[list] = None):
        self.entity = entity
        self.source = source
        self.target = target
        super().__init__(
            f"Cannot transition {entity} from {source} to {target}",
            {"source": source, "target": target, "allowed": list(allowed or [])},
        )


class ConflictError(ServiceError):
    """Operation blocked by existing children, open references or a uniqueness rule."""
    status_code = 409
    error = "Conflict"


class InternalError(ServiceError):
    """Unexpected storage failure. Only a generic message reaches the caller."""
    status_code = 500
    error = "Internal Error"

    def __init__(self, message: str = "An unexpected error occurred", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)

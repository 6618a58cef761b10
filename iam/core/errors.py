"""
Error taxonomy for the IAM core.

Services raise these; the HTTP layer renders them through a single
exception handler registered in ``iam.main``.
"""
from typing import Any, Dict, Iterable, Optional


class IAMError(Exception):
    """
    Base error carrying a machine code, an HTTP status and structured details.
    """

    code = "IAM_ERROR"
    status_code = 400

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        self.message = message
        self.details: Dict[str, Any] = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class NotFoundError(IAMError):
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, entity: str, entity_id: Any = None, *, missing: Optional[Iterable[Any]] = None) -> None:
        details: Dict[str, Any] = {"entity": entity}
        if missing is not None:
            missing = sorted(missing)
            details["missing"] = missing
            message = f"{entity.capitalize()} not found: {', '.join(str(m) for m in missing)}"
        else:
            details["id"] = entity_id
            message = f"{entity.capitalize()} {entity_id} not found"
        super().__init__(message, details=details)
        self.entity = entity
        self.entity_id = entity_id


class ConflictError(IAMError):
    code = "CONFLICT"
    status_code = 409

    def __init__(self, message: str, *, dependents: Optional[int] = None, **details: Any) -> None:
        if dependents is not None:
            details["dependents"] = dependents
        super().__init__(message, details=details)
        self.dependents = dependents


class ValidationError(IAMError):
    code = "VALIDATION_ERROR"
    status_code = 422

    def __init__(self, message: str, field: Optional[str] = None, **details: Any) -> None:
        if field:
            details["field"] = field
        super().__init__(message, details=details)
        self.field = field


class ResolutionError(IAMError):
    """Effective permissions could not be computed; never treated as a grant."""

    code = "RESOLUTION_ERROR"
    status_code = 503

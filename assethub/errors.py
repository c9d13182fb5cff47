"""
Engine error taxonomy.

Every error carries an HTTP status and a message that is safe to show to the
end user. Store-internal details stay in the logs.
"""
from typing import Any, Dict, Optional


class AssetHubError(Exception):
    """Base error for the asset engine."""

    status_code = 500
    code = "internal_error"

    def __init__(self, message: str, **extra: Any):
        super().__init__(message)
        self.message = message
        self.extra: Dict[str, Any] = extra

    def to_dict(self) -> Dict[str, Any]:
        body = {"detail": self.message, "error": self.code}
        body.update(self.extra)
        return body


class Unauthorized(AssetHubError):
    """Actor lacks the role or ownership required for the operation."""

    status_code = 403
    code = "unauthorized"

    def __init__(self, message: str = "You are not allowed to perform this action", **extra: Any):
        super().__init__(message, **extra)


class Forbidden(Unauthorized):
    """Ownership precondition failed (e.g. reporting on someone else's asset)."""

    code = "forbidden"


class InvalidTransition(AssetHubError):
    """State machine precondition failed."""

    status_code = 400
    code = "invalid_transition"

    def __init__(self, entity_kind: str, current_state: Optional[str], action: str):
        self.entity_kind = entity_kind
        self.current_state = current_state
        self.action = action
        super().__init__(
            f"Cannot {action.replace('_', ' ')} {entity_kind.replace('_', ' ')} in status '{current_state}'",
            current_state=current_state,
            action=action,
        )


class ReferentialConflict(AssetHubError):
    """Delete blocked because other rows still reference the entity."""

    status_code = 400
    code = "referential_conflict"

    def __init__(self, count: int, message: Optional[str] = None):
        self.count = count
        super().__init__(message or f"Cannot delete. {count} record(s) depend on it.", count=count)


class NotFound(AssetHubError):
    status_code = 404
    code = "not_found"

    def __init__(self, entity_kind: str, entity_id: Any = None):
        self.entity_kind = entity_kind
        self.entity_id = entity_id
        label = entity_kind.replace("_", " ").capitalize()
        super().__init__(f"{label} not found")


class ValidationFailed(AssetHubError):
    """Request is well-formed but violates a business rule on its fields."""

    status_code = 400
    code = "validation_failed"


class UpstreamUnavailable(AssetHubError):
    """Entity store or warranty provider call failed; callers decide whether to retry."""

    status_code = 500
    code = "upstream_unavailable"

    def __init__(self, message: str = "Upstream service unavailable", **extra: Any):
        super().__init__(message, **extra)


class UpstreamRejected(AssetHubError):
    """Warranty provider answered with a client error; its status and message are passed through."""

    code = "upstream_rejected"

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        super().__init__(message)

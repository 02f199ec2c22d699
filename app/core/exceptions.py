# app/core/exceptions.py
# Typed workflow errors
#
# Every error carries a machine-readable `code` and maps to exactly one HTTP
# status in the handler registered by app/main.py. Services raise these;
# endpoints never translate them by hand.
#
#   WorkflowError
#   ├── NotFound                  404
#   ├── PermissionDenied          403
#   ├── InvalidTransition         422
#   ├── ValidationFailed          422
#   ├── DuplicateAssociation      409
#   ├── ConflictingDemo           409
#   ├── RescheduleAlreadyPending  409
#   ├── DemoNotYetElapsed         409
#   ├── AssociationNotAssigned    409
#   ├── TutorAlreadyAssigned      409
#   ├── RequirementClosed         409
#   ├── VersionConflict           409
#   └── ConcurrentModification    409

from typing import Any, Dict, Optional
from uuid import UUID


class WorkflowError(Exception):
    """Base class for all errors raised by the matching workflow."""

    code: str = "WORKFLOW_ERROR"
    status_code: int = 400

    def __init__(self, message: str, **details: Any):
        self.message = message
        self.details = details
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            body["details"] = {k: str(v) if isinstance(v, UUID) else v for k, v in self.details.items()}
        return body


class NotFound(WorkflowError):
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, entity_type: str, entity_id: Any):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"{entity_type.capitalize()} not found.",
            entity_type=entity_type,
            entity_id=entity_id,
        )


class PermissionDenied(WorkflowError):
    code = "PERMISSION_DENIED"
    status_code = 403

    def __init__(self, role: str, operation: str):
        self.role = role
        self.operation = operation
        super().__init__(
            f"Role '{role}' may not {operation.replace('_', ' ')}.",
            role=role,
            operation=operation,
        )


class InvalidTransition(WorkflowError):
    code = "INVALID_TRANSITION"
    status_code = 422

    def __init__(self, entity_type: str, current: Optional[str], target: str, role: str):
        self.entity_type = entity_type
        self.current = current
        self.target = target
        self.role = role
        super().__init__(
            f"Cannot move {entity_type} from '{current}' to '{target}' as {role}.",
            entity_type=entity_type,
            current=current,
            target=target,
            role=role,
        )


class ValidationFailed(WorkflowError):
    code = "VALIDATION_FAILED"
    status_code = 422


class DuplicateAssociation(WorkflowError):
    code = "DUPLICATE_ASSOCIATION"
    status_code = 409

    def __init__(self, requirement_id: UUID, tutor_id: UUID):
        super().__init__(
            "This tutor is already linked to the requirement.",
            requirement_id=requirement_id,
            tutor_id=tutor_id,
        )


class ConflictingDemo(WorkflowError):
    code = "CONFLICTING_DEMO"
    status_code = 409

    def __init__(self, requirement_id: UUID, tutor_id: UUID):
        super().__init__(
            "An active demo already exists for this tutor and requirement.",
            requirement_id=requirement_id,
            tutor_id=tutor_id,
        )


class RescheduleAlreadyPending(WorkflowError):
    code = "RESCHEDULE_ALREADY_PENDING"
    status_code = 409

    def __init__(self, demo_id: UUID):
        super().__init__(
            "A reschedule request for this demo is already awaiting a response.",
            demo_id=demo_id,
        )


class DemoNotYetElapsed(WorkflowError):
    code = "DEMO_NOT_YET_ELAPSED"
    status_code = 409

    def __init__(self, demo_id: UUID, ends_at: Any):
        super().__init__(
            "The demo cannot be completed before its scheduled end.",
            demo_id=demo_id,
            ends_at=str(ends_at),
        )


class AssociationNotAssigned(WorkflowError):
    code = "ASSOCIATION_NOT_ASSIGNED"
    status_code = 409

    def __init__(self, requirement_id: UUID, tutor_id: UUID):
        super().__init__(
            "Classes can only start with the tutor assigned to this requirement.",
            requirement_id=requirement_id,
            tutor_id=tutor_id,
        )


class TutorAlreadyAssigned(WorkflowError):
    code = "TUTOR_ALREADY_ASSIGNED"
    status_code = 409

    def __init__(self, requirement_id: UUID, tutor_id: UUID):
        super().__init__(
            "Another tutor is already assigned to this requirement.",
            requirement_id=requirement_id,
            assigned_tutor_id=tutor_id,
        )


class RequirementClosed(WorkflowError):
    code = "REQUIREMENT_CLOSED"
    status_code = 409

    def __init__(self, requirement_id: UUID):
        super().__init__("This requirement is closed.", requirement_id=requirement_id)


class VersionConflict(WorkflowError):
    """The caller's read version no longer matches the stored row."""

    code = "VERSION_CONFLICT"
    status_code = 409

    def __init__(self, entity_type: str, entity_id: UUID, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"{entity_type.capitalize()} was changed by someone else.",
            entity_type=entity_type,
            entity_id=entity_id,
            expected_version=expected,
            actual_version=actual,
        )


class ConcurrentModification(WorkflowError):
    code = "CONCURRENT_MODIFICATION"
    status_code = 409

    def __init__(self, operation: str, attempts: int):
        self.operation = operation
        self.attempts = attempts
        super().__init__(
            "This record was updated by someone else. Refresh and try again.",
            operation=operation,
            attempts=attempts,
        )

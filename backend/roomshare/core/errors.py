"""Error Hierarchy — typed, categorized exceptions for all RoomShare failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Input and business-rule errors (400-level) are recoverable; backend errors (500-level) are not
    - to_response() produces REST envelope; to_sse_event() produces SSE envelope
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with RoomShareError base: FastAPI global handler catches all
    - ErrorContext as dataclass: rich observability without coupling to logging framework
    - UniquenessViolationError is raised by store adapters and consumed by services;
      it only reaches users when a service has nothing better to say
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    PERMISSION = "permission"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    CONFLICT = "conflict"
    DATABASE = "database"
    STORAGE = "storage"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    room_id: str | None = None
    user_id: str | None = None
    user_message: str | None = None
    debug_info: dict[str, Any] | None = None


class RoomShareError(Exception):
    """Base exception for all RoomShare errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.context.user_message or self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "room_id": self.context.room_id,
                    "user_id": self.context.user_id,
                },
            }
        }

    def to_sse_event(self) -> dict:
        """Convert to SSE error event."""
        return {
            "type": "error",
            "data": {
                "code": self.code,
                "message": self.context.user_message or self.message,
                "severity": self.severity.value,
                "recoverable": self.severity in (
                    ErrorSeverity.INFO, ErrorSeverity.WARNING,
                ),
            },
        }


# ─── Input & Session Errors (400-level) ─────────────────────────

class InputValidationError(RoomShareError):
    """User input rejected before any network call."""
    def __init__(self, message: str, field: str, context: ErrorContext | None = None):
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, 400,
        )
        self.field = field


class AuthenticationError(RoomShareError):
    """Identity provider rejected the credentials."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "AUTHENTICATION_FAILED", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.WARNING, context, 401,
        )


class NotAuthenticatedError(RoomShareError):
    """Operation needs a signed-in user and there is none."""
    def __init__(
        self, message: str = "User not authenticated. Please log in.",
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, "NOT_AUTHENTICATED", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.WARNING, context, 401,
        )


class ProfileIncompleteError(RoomShareError):
    """Signed in, but no username chosen yet."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Choose a username before continuing.",
            "PROFILE_INCOMPLETE", ErrorCategory.PERMISSION,
            ErrorSeverity.WARNING, context, 403,
        )


class PermissionDeniedError(RoomShareError):
    """User is signed in but does not own the resource."""
    def __init__(self, action: str, context: ErrorContext | None = None):
        super().__init__(
            f"Only the owner may {action}.",
            "PERMISSION_DENIED", ErrorCategory.PERMISSION,
            ErrorSeverity.ERROR, context, 403,
        )
        self.action = action


class ResourceNotFoundError(RoomShareError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )


class UniquenessViolationError(RoomShareError):
    """Store rejected a write because a unique constraint already holds the value."""
    def __init__(self, constraint: str, context: ErrorContext | None = None):
        super().__init__(
            f"Unique constraint violated: {constraint}",
            "UNIQUE_VIOLATION", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )
        self.constraint = constraint


class UsernameTakenError(RoomShareError):
    """Profile username already belongs to someone else (or is already set)."""
    def __init__(self, username: str, context: ErrorContext | None = None):
        super().__init__(
            f"Username '{username}' is already taken.",
            "USERNAME_TAKEN", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, context, 409,
        )
        self.username = username


class JoinCodeExhaustedError(RoomShareError):
    """Room creation kept colliding on join code after bounded retries."""
    def __init__(self, attempts: int, context: ErrorContext | None = None):
        super().__init__(
            f"Could not allocate a unique join code after {attempts} attempts. Please try again.",
            "JOIN_CODE_EXHAUSTED", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )
        self.attempts = attempts


# ─── Backend Errors (500-level) ─────────────────────────────────

class StoreError(RoomShareError):
    """Data store operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


class ObjectStoreError(RoomShareError):
    """Object store operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Storage {operation} failed: {message}",
            "STORAGE_ERROR", ErrorCategory.STORAGE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


class PartialDeletionError(RoomShareError):
    """Multi-step room deletion stopped midway; every step is safe to retry."""
    def __init__(
        self,
        room_id: str,
        failed_step: str,
        completed_steps: list[str],
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.room_id = room_id
        super().__init__(
            f"Room deletion stopped at '{failed_step}'. Some data may remain; please retry.",
            "PARTIAL_DELETION", ErrorCategory.INTERNAL,
            ErrorSeverity.ERROR, ctx, 500,
        )
        self.failed_step = failed_step
        self.completed_steps = completed_steps

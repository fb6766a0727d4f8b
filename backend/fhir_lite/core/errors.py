"""Error Hierarchy — typed, categorized exceptions for all FHIR Lite failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity, FHIR issue code
    - Client errors (400-level) are never retried; engine errors (500-level) are not retried here
    - to_operation_outcome() is the single client-facing error shape
    - No internal details leaked in user-facing diagnostics

Design Decisions:
    - Single hierarchy with FhirLiteError base: FastAPI global handler catches all (ADR: uniform error shape)
    - ClientErrorKind enum on ClientError: callers pattern-match on kind/code, not on exception type
    - ErrorContext as dataclass: rich observability without coupling to logging framework
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone

from fhir_lite.core.domain_types import IssueCode, IssueSeverity
from fhir_lite.core.operation_outcome import build_issue, operation_outcome


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    RESOURCE_NOT_FOUND = "resource_not_found"
    ENGINE = "engine"
    INTERNAL = "internal"


class ClientErrorKind(str, Enum):
    """Why a request was rejected before reaching the document engine."""
    INVALID_PAYLOAD = "invalid_payload"
    INVALID_ENUM_VALUE = "invalid_enum_value"
    INVALID_DATE_SHAPE = "invalid_date_shape"
    TYPE_MISMATCH = "type_mismatch"
    INVALID_PARAMETER = "invalid_parameter"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    resource_id: str | None = None
    kind: str | None = None
    debug_info: dict[str, Any] | None = None


class FhirLiteError(Exception):
    """Base exception for all FHIR Lite errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: IssueSeverity = IssueSeverity.ERROR,
        issue_code: IssueCode = IssueCode.EXCEPTION,
        http_status: int = 500,
        location: list[str] | None = None,
        context: ErrorContext | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.issue_code = issue_code
        self.http_status = http_status
        self.location = location
        self.context = context or ErrorContext()

    def to_operation_outcome(self) -> dict:
        """Convert to a FHIR OperationOutcome with a single issue."""
        return operation_outcome(
            build_issue(
                self.severity, self.issue_code, self.message, self.location,
            ),
        )


# ─── Client Errors (400-level) ──────────────────────────────────

class ClientError(FhirLiteError):
    """Request rejected as the caller's fault. Always 400."""
    def __init__(
        self,
        message: str,
        kind: ClientErrorKind,
        location: list[str] | None = None,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, kind.value.upper(), ErrorCategory.VALIDATION,
            IssueSeverity.ERROR, IssueCode.INVALID, 400, location, context,
        )
        self.kind = kind


class InvalidPayloadError(ClientError):
    """Body is not JSON, not an object, or fails structural validation."""
    def __init__(
        self, message: str, location: list[str] | None = None,
        context: ErrorContext | None = None,
    ):
        super().__init__(message, ClientErrorKind.INVALID_PAYLOAD, location, context)


class InvalidEnumValueError(ClientError):
    """Category value outside its closed set."""
    def __init__(
        self, raw: str, allowed: tuple[str, ...], location: str,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Invalid {location.rsplit('.', 1)[-1]} '{raw}' "
            f"(allowed: {'|'.join(allowed)})",
            ClientErrorKind.INVALID_ENUM_VALUE, [location], context,
        )
        self.raw = raw
        self.allowed = allowed


class InvalidDateShapeError(ClientError):
    """Date bound not shaped YYYY-MM-DD."""
    def __init__(self, parameter: str, raw: str, context: ErrorContext | None = None):
        super().__init__(
            f"{parameter} must be YYYY-MM-DD (got '{raw}')",
            ClientErrorKind.INVALID_DATE_SHAPE, [parameter], context,
        )
        self.parameter = parameter
        self.raw = raw


class TypeMismatchError(ClientError):
    """Payload declares a resourceType other than the endpoint's kind."""
    def __init__(
        self, expected: str, declared: object, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"resourceType must be {expected} (got {declared!r})",
            ClientErrorKind.TYPE_MISMATCH, [f"{expected}.resourceType"], context,
        )
        self.expected = expected
        self.declared = declared


class InvalidParameterError(ClientError):
    """Search parameter present but unparseable (e.g. non-integer _count)."""
    def __init__(self, parameter: str, message: str, context: ErrorContext | None = None):
        super().__init__(
            f"{parameter}: {message}", ClientErrorKind.INVALID_PARAMETER,
            [parameter], context,
        )
        self.parameter = parameter


# ─── Engine Errors (500-level) ──────────────────────────────────

class EngineError(FhirLiteError):
    """Document engine failed or returned something unusable."""
    def __init__(
        self,
        message: str,
        code: str = "ENGINE_ERROR",
        issue_code: IssueCode = IssueCode.EXCEPTION,
        http_status: int = 500,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, code, ErrorCategory.ENGINE,
            IssueSeverity.FATAL, issue_code, http_status, None, context,
        )


class EngineUnavailableError(EngineError):
    """Store unreachable or failed mid-operation."""
    def __init__(self, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Document engine unavailable during {operation}",
            "ENGINE_UNAVAILABLE", IssueCode.TRANSIENT, 503, context,
        )
        self.operation = operation


class MalformedDocumentError(EngineError):
    """Store rejected a document/filter, or handed back an unreadable one."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            f"Malformed document: {message}",
            "MALFORMED_DOCUMENT", IssueCode.STRUCTURE, 500, context,
        )

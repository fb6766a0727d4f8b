"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - ResourceId wraps UUID; never use a bare UUID or str id in domain logic
    - All closed value sets encoded as Enums, no raw string matching
    - ResultPage.total is the engine's full match count, independent of len(ids)

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders (ADR: FHIR wire codes are strings)
"""

from dataclasses import dataclass
from enum import Enum
from typing import NewType
from uuid import UUID


# ─── Identity Types ──────────────────────────────────────────────

ResourceId = NewType("ResourceId", UUID)


# ─── Constants ───────────────────────────────────────────────────

PATIENT_KIND: str = "Patient"
INITIAL_VERSION_ID: str = "1"
FHIR_MEDIA_TYPE: str = "application/fhir+json"


# ─── Enums ───────────────────────────────────────────────────────

class AdministrativeGender(str, Enum):
    """FHIR administrative-gender value set — the searchable category."""
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"
    UNKNOWN = "unknown"


class IssueSeverity(str, Enum):
    """OperationOutcome issue severities, ordered from worst to mildest."""
    FATAL = "fatal"
    ERROR = "error"
    WARNING = "warning"
    INFORMATION = "information"

    @property
    def is_failure(self) -> bool:
        return self in (IssueSeverity.FATAL, IssueSeverity.ERROR)


class IssueCode(str, Enum):
    """Subset of the FHIR issue-type value set used by this service."""
    INVALID = "invalid"
    STRUCTURE = "structure"
    NOT_FOUND = "not-found"
    EXCEPTION = "exception"
    TRANSIENT = "transient"


class LinkRelation(str, Enum):
    """Bundle link relations. Pagination is forward-only: no previous."""
    SELF = "self"
    NEXT = "next"


# ─── Value Objects ───────────────────────────────────────────────

@dataclass(frozen=True)
class ValidationIssue:
    """One finding reported by a resource validator."""
    severity: IssueSeverity
    location: str
    message: str

    def describe(self) -> str:
        return f"[{self.severity.value}] {self.location} - {self.message}"


@dataclass(frozen=True)
class ResultPage:
    """A page of matching ids plus the total match count."""
    ids: tuple[ResourceId, ...]
    total: int

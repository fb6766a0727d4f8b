"""OperationOutcome — the one diagnostic shape every client-facing failure uses.

Invariants:
    - Every issue carries severity and code; diagnostics and location only when known
    - Pure dict builders: no response objects, no IO
"""

from typing import Any

from fhir_lite.core.domain_types import IssueCode, IssueSeverity


def build_issue(
    severity: IssueSeverity,
    code: IssueCode,
    diagnostics: str | None = None,
    location: list[str] | None = None,
) -> dict[str, Any]:
    issue: dict[str, Any] = {"severity": severity.value, "code": code.value}
    if diagnostics is not None:
        issue["diagnostics"] = diagnostics
    if location:
        issue["location"] = list(location)
    return issue


def operation_outcome(*issues: dict[str, Any]) -> dict[str, Any]:
    return {"resourceType": "OperationOutcome", "issue": list(issues)}


def not_found(reference: str) -> dict[str, Any]:
    """Outcome for a fetch whose id the store does not know."""
    return operation_outcome(
        build_issue(IssueSeverity.ERROR, IssueCode.NOT_FOUND, reference),
    )


def internal_error() -> dict[str, Any]:
    """Outcome for unexpected failures. Carries no internal details."""
    return operation_outcome(
        build_issue(
            IssueSeverity.FATAL, IssueCode.EXCEPTION,
            "An unexpected error occurred",
        ),
    )

"""Patient Validator — structural validation of inbound payloads as ValidationIssues.

Invariants:
    - Never raises for bad payloads: every finding becomes a ValidationIssue
    - Pydantic failures are severity=error; unrecognized top-level elements are warnings
    - Locations are FHIRPath-style: Patient.name[0].given[1]
"""

import logging
from typing import Any

from pydantic import ValidationError

from fhir_lite.core.domain_types import IssueSeverity, PATIENT_KIND, ValidationIssue
from fhir_lite.schemas.patient import PatientResource

logger = logging.getLogger(__name__)

_VALUE_ERROR_PREFIX = "Value error, "


def render_location(root: str, loc: tuple[Any, ...]) -> str:
    """('name', 0, 'given', 1) -> 'Patient.name[0].given[1]'."""
    path = root
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path += f".{part}"
    return path


class PatientValidator:
    """ResourceValidator for FHIR R4 Patient payloads."""

    def validate(self, document: dict[str, Any]) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []
        try:
            PatientResource.model_validate(document)
        except ValidationError as exc:
            for error in exc.errors():
                message = error["msg"]
                if message.startswith(_VALUE_ERROR_PREFIX):
                    message = message[len(_VALUE_ERROR_PREFIX):]
                issues.append(ValidationIssue(
                    IssueSeverity.ERROR,
                    render_location(PATIENT_KIND, error["loc"]),
                    message,
                ))
        issues.extend(self._unrecognized_elements(document))
        if issues:
            logger.debug(f"Patient validation produced {len(issues)} issue(s)")
        return issues

    @staticmethod
    def _unrecognized_elements(document: dict[str, Any]) -> list[ValidationIssue]:
        known = PatientResource.model_fields
        return [
            ValidationIssue(
                IssueSeverity.WARNING,
                f"{PATIENT_KIND}.{key}",
                f"Unrecognized element '{key}'",
            )
            for key in document
            # _birthDate and friends carry primitive extensions
            if key not in known and not key.startswith("_")
        ]

"""Error Hierarchy — verifies codes, statuses and OperationOutcome rendering.

Tests:
    - Client errors are 400 / invalid, coded from their kind
    - Engine errors are fatal; unavailability is 503 / transient
    - to_operation_outcome() yields a single issue with diagnostics and location
    - Canned outcomes (not-found, internal) have the expected shape
"""

from fhir_lite.core.errors import (
    ClientError,
    ClientErrorKind,
    EngineError,
    EngineUnavailableError,
    ErrorCategory,
    FhirLiteError,
    InvalidPayloadError,
    InvalidParameterError,
    MalformedDocumentError,
    TypeMismatchError,
)
from fhir_lite.core.operation_outcome import internal_error, not_found


def test_client_errors_share_status_and_issue_code():
    for err in (
        InvalidPayloadError("bad"),
        TypeMismatchError("Patient", "Observation"),
        InvalidParameterError("_count", "must be an integer (got 'x')"),
    ):
        assert isinstance(err, ClientError)
        assert isinstance(err, FhirLiteError)
        assert err.http_status == 400
        assert err.category == ErrorCategory.VALIDATION
        outcome = err.to_operation_outcome()
        assert outcome["issue"][0]["code"] == "invalid"
        assert outcome["issue"][0]["severity"] == "error"


def test_client_error_code_derived_from_kind():
    assert InvalidPayloadError("bad").code == "INVALID_PAYLOAD"
    assert TypeMismatchError("Patient", None).kind == ClientErrorKind.TYPE_MISMATCH


def test_type_mismatch_message_and_location():
    err = TypeMismatchError("Patient", "Observation")
    assert err.message == "resourceType must be Patient (got 'Observation')"
    assert err.location == ["Patient.resourceType"]


def test_outcome_carries_diagnostics_and_location():
    err = InvalidPayloadError("Validation failed", location=["Patient.gender"])
    assert err.to_operation_outcome() == {
        "resourceType": "OperationOutcome",
        "issue": [{
            "severity": "error",
            "code": "invalid",
            "diagnostics": "Validation failed",
            "location": ["Patient.gender"],
        }],
    }


def test_engine_errors_are_fatal():
    err = EngineError("boom")
    assert err.http_status == 500
    assert err.category == ErrorCategory.ENGINE
    assert err.to_operation_outcome()["issue"][0]["severity"] == "fatal"


def test_engine_unavailable_is_transient_503():
    err = EngineUnavailableError("search")
    assert err.http_status == 503
    assert err.code == "ENGINE_UNAVAILABLE"
    assert err.to_operation_outcome()["issue"][0]["code"] == "transient"


def test_malformed_document_is_structure_500():
    err = MalformedDocumentError("not JSON")
    assert err.http_status == 500
    assert err.message == "Malformed document: not JSON"
    assert err.to_operation_outcome()["issue"][0]["code"] == "structure"


def test_not_found_outcome():
    assert not_found("Patient/abc") == {
        "resourceType": "OperationOutcome",
        "issue": [{"severity": "error", "code": "not-found", "diagnostics": "Patient/abc"}],
    }


def test_internal_error_outcome_is_generic():
    issue = internal_error()["issue"][0]
    assert issue == {
        "severity": "fatal",
        "code": "exception",
        "diagnostics": "An unexpected error occurred",
    }

"""Patient Validator — verifies structural validation of Patient payloads.

Tests:
    - A well-formed Patient produces no issues
    - Gender outside the value set, malformed birthDate and wrong primitive types are errors
    - deceased[x] and multipleBirth[x] accept one variant only
    - Unrecognized top-level elements are warnings; _primitive extensions are not
    - Locations render FHIRPath-style with indices
"""

import pytest

from fhir_lite.core.domain_types import IssueSeverity
from fhir_lite.services.validation import PatientValidator, render_location


@pytest.fixture
def validator():
    return PatientValidator()


@pytest.fixture
def patient():
    return {
        "resourceType": "Patient",
        "identifier": [{"system": "urn:oid:1.2.36.146.595.217.0.1", "value": "12345"}],
        "active": True,
        "name": [{"use": "official", "family": "Chalmers", "given": ["Peter", "James"]}],
        "telecom": [{"system": "phone", "value": "(03) 5555 6473", "use": "work"}],
        "gender": "male",
        "birthDate": "1974-12-25",
        "address": [{"use": "home", "line": ["534 Erewhon St"], "city": "PleasantVille"}],
    }


def _errors(issues):
    return [i for i in issues if i.severity is IssueSeverity.ERROR]


def test_valid_patient_has_no_issues(validator, patient):
    assert validator.validate(patient) == []


def test_minimal_patient_is_valid(validator):
    assert validator.validate({"resourceType": "Patient"}) == []


def test_gender_is_case_insensitive(validator, patient):
    patient["gender"] = "MALE"
    assert validator.validate(patient) == []


def test_gender_outside_value_set_is_error(validator, patient):
    patient["gender"] = "females"
    [issue] = validator.validate(patient)
    assert issue.severity is IssueSeverity.ERROR
    assert issue.location == "Patient.gender"
    assert issue.message == "Invalid gender 'females' (allowed: male|female|other|unknown)"


@pytest.mark.parametrize("birth_date", ["1974/12/25", "1974-13-01", "25-12-1974", ""])
def test_malformed_birth_date_is_error(validator, patient, birth_date):
    patient["birthDate"] = birth_date
    [issue] = _errors(validator.validate(patient))
    assert issue.location == "Patient.birthDate"


@pytest.mark.parametrize("birth_date", ["1974", "1974-12", "1974-12-25"])
def test_partial_birth_dates_are_valid(validator, patient, birth_date):
    patient["birthDate"] = birth_date
    assert validator.validate(patient) == []


def test_string_boolean_is_rejected(validator, patient):
    patient["active"] = "true"
    [issue] = _errors(validator.validate(patient))
    assert issue.location == "Patient.active"


def test_nested_location_has_indices(validator, patient):
    patient["name"][0]["given"] = ["Peter", 7]
    [issue] = _errors(validator.validate(patient))
    assert issue.location == "Patient.name[0].given[1]"


def test_bad_name_use_code(validator, patient):
    patient["name"][0]["use"] = "nickname-ish"
    [issue] = _errors(validator.validate(patient))
    assert issue.location == "Patient.name[0].use"


def test_contact_gender_uses_same_value_set(validator, patient):
    patient["contact"] = [{"gender": "robot"}]
    [issue] = _errors(validator.validate(patient))
    assert issue.location == "Patient.contact[0].gender"


def test_deceased_choice_is_exclusive(validator, patient):
    patient["deceasedBoolean"] = True
    patient["deceasedDateTime"] = "2015-02-07T13:28:17+02:00"
    [issue] = _errors(validator.validate(patient))
    assert "deceased[x]" in issue.message


def test_multiple_birth_choice_is_exclusive(validator, patient):
    patient["multipleBirthBoolean"] = True
    patient["multipleBirthInteger"] = 2
    [issue] = _errors(validator.validate(patient))
    assert "multipleBirth[x]" in issue.message


def test_wrong_resource_type_is_error(validator):
    [issue] = _errors(validator.validate({"resourceType": "Observation"}))
    assert issue.location == "Patient.resourceType"


def test_unrecognized_element_is_warning(validator, patient):
    patient["favouriteColour"] = "blue"
    [issue] = validator.validate(patient)
    assert issue.severity is IssueSeverity.WARNING
    assert issue.location == "Patient.favouriteColour"
    assert issue.message == "Unrecognized element 'favouriteColour'"


def test_primitive_extension_elements_are_not_flagged(validator, patient):
    patient["_birthDate"] = {"extension": [{"url": "http://example.org/x"}]}
    assert validator.validate(patient) == []


def test_all_issues_reported_together(validator, patient):
    patient["gender"] = "females"
    patient["birthDate"] = "1974/12/25"
    patient["favouriteColour"] = "blue"
    issues = validator.validate(patient)
    assert {i.location for i in issues} == {
        "Patient.gender", "Patient.birthDate", "Patient.favouriteColour",
    }


def test_render_location():
    assert render_location("Patient", ("name", 0, "given", 1)) == "Patient.name[0].given[1]"
    assert render_location("Patient", ()) == "Patient"

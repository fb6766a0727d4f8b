"""Patient Schemas — pydantic models of the FHIR R4 Patient structure for payload validation.

Invariants:
    - Structural conformance only: types, cardinality, value sets, primitive formats
    - Unknown sub-elements pass through (extension-friendly); top-level unknowns are
      reported as warnings by PatientValidator, not rejected here
    - gender is decoded through GENDER_CODEC; the codec is the single source of allowed codes
    - deceased[x] and multipleBirth[x] are choice types: at most one variant present

Design Decisions:
    - Strict* scalar types: FHIR JSON primitives are typed, "true" is not a boolean
    - camelCase field names match the wire, so no alias layer is needed
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt, StrictStr, field_validator, model_validator

from fhir_lite.core.enum_codec import GENDER_CODEC
from fhir_lite.core.errors import InvalidEnumValueError

FHIR_ID_PATTERN = r"^[A-Za-z0-9\-\.]{1,64}$"
FHIR_DATE_PATTERN = r"^[0-9]{4}(-(0[1-9]|1[0-2])(-(0[1-9]|[12][0-9]|3[01]))?)?$"
FHIR_DATETIME_PATTERN = (
    r"^[0-9]{4}(-(0[1-9]|1[0-2])(-(0[1-9]|[12][0-9]|3[01])"
    r"(T([01][0-9]|2[0-3]):[0-5][0-9]:([0-5][0-9]|60)(\.[0-9]+)?"
    r"(Z|(\+|-)((0[0-9]|1[0-3]):[0-5][0-9]|14:00)))?)?)?$"
)
FHIR_INSTANT_PATTERN = (
    r"^[0-9]{4}-(0[1-9]|1[0-2])-(0[1-9]|[12][0-9]|3[01])"
    r"T([01][0-9]|2[0-3]):[0-5][0-9]:([0-5][0-9]|60)(\.[0-9]+)?"
    r"(Z|(\+|-)((0[0-9]|1[0-3]):[0-5][0-9]|14:00))$"
)


class FhirElement(BaseModel):
    """Base for complex datatypes — id/extension and friends pass through."""
    model_config = ConfigDict(extra="allow")


# ─── Datatypes ───────────────────────────────────────────────────

class Period(FhirElement):
    start: StrictStr | None = Field(None, pattern=FHIR_DATETIME_PATTERN)
    end: StrictStr | None = Field(None, pattern=FHIR_DATETIME_PATTERN)


class Coding(FhirElement):
    system: StrictStr | None = None
    version: StrictStr | None = None
    code: StrictStr | None = None
    display: StrictStr | None = None
    userSelected: StrictBool | None = None


class CodeableConcept(FhirElement):
    coding: list[Coding] | None = None
    text: StrictStr | None = None


class Identifier(FhirElement):
    use: Literal["usual", "official", "temp", "secondary", "old"] | None = None
    type: CodeableConcept | None = None
    system: StrictStr | None = None
    value: StrictStr | None = None
    period: Period | None = None


class Reference(FhirElement):
    reference: StrictStr | None = None
    type: StrictStr | None = None
    identifier: Identifier | None = None
    display: StrictStr | None = None


class HumanName(FhirElement):
    use: Literal[
        "usual", "official", "temp", "nickname", "anonymous", "old", "maiden",
    ] | None = None
    text: StrictStr | None = None
    family: StrictStr | None = None
    given: list[StrictStr] | None = None
    prefix: list[StrictStr] | None = None
    suffix: list[StrictStr] | None = None
    period: Period | None = None


class ContactPoint(FhirElement):
    system: Literal[
        "phone", "fax", "email", "pager", "url", "sms", "other",
    ] | None = None
    value: StrictStr | None = None
    use: Literal["home", "work", "temp", "old", "mobile"] | None = None
    rank: StrictInt | None = Field(None, ge=1)
    period: Period | None = None


class Address(FhirElement):
    use: Literal["home", "work", "temp", "old", "billing"] | None = None
    type: Literal["postal", "physical", "both"] | None = None
    text: StrictStr | None = None
    line: list[StrictStr] | None = None
    city: StrictStr | None = None
    district: StrictStr | None = None
    state: StrictStr | None = None
    postalCode: StrictStr | None = None
    country: StrictStr | None = None
    period: Period | None = None


class MetaElement(FhirElement):
    versionId: StrictStr | None = Field(None, pattern=FHIR_ID_PATTERN)
    lastUpdated: StrictStr | None = Field(None, pattern=FHIR_INSTANT_PATTERN)
    source: StrictStr | None = None
    profile: list[StrictStr] | None = None
    security: list[Coding] | None = None
    tag: list[Coding] | None = None


def _decode_gender(v: str | None) -> str | None:
    try:
        decoded = GENDER_CODEC.decode(v)
    except InvalidEnumValueError as exc:
        raise ValueError(exc.message) from exc
    return GENDER_CODEC.encode(decoded) if decoded is not None else None


# ─── Patient backbone elements ───────────────────────────────────

class PatientContact(FhirElement):
    relationship: list[CodeableConcept] | None = None
    name: HumanName | None = None
    telecom: list[ContactPoint] | None = None
    address: Address | None = None
    gender: StrictStr | None = None
    organization: Reference | None = None
    period: Period | None = None

    @field_validator("gender")
    @classmethod
    def gender_in_value_set(cls, v: str | None) -> str | None:
        return _decode_gender(v)


class PatientCommunication(FhirElement):
    language: CodeableConcept
    preferred: StrictBool | None = None


class PatientLink(FhirElement):
    other: Reference
    type: Literal["replaced-by", "replaces", "refer", "seealso"]


# ─── Patient ─────────────────────────────────────────────────────

class PatientResource(BaseModel):
    """FHIR R4 Patient — structural shape only."""

    model_config = ConfigDict(extra="allow")

    resourceType: Literal["Patient"]
    id: StrictStr | None = Field(None, pattern=FHIR_ID_PATTERN)
    meta: MetaElement | None = None
    implicitRules: StrictStr | None = None
    language: StrictStr | None = None
    text: dict | None = None
    contained: list[dict] | None = None
    extension: list[dict] | None = None
    modifierExtension: list[dict] | None = None

    identifier: list[Identifier] | None = None
    active: StrictBool | None = None
    name: list[HumanName] | None = None
    telecom: list[ContactPoint] | None = None
    gender: StrictStr | None = None
    birthDate: StrictStr | None = Field(None, pattern=FHIR_DATE_PATTERN)
    deceasedBoolean: StrictBool | None = None
    deceasedDateTime: StrictStr | None = Field(None, pattern=FHIR_DATETIME_PATTERN)
    address: list[Address] | None = None
    maritalStatus: CodeableConcept | None = None
    multipleBirthBoolean: StrictBool | None = None
    multipleBirthInteger: StrictInt | None = None
    photo: list[dict] | None = None
    contact: list[PatientContact] | None = None
    communication: list[PatientCommunication] | None = None
    generalPractitioner: list[Reference] | None = None
    managingOrganization: Reference | None = None
    link: list[PatientLink] | None = None

    @field_validator("gender")
    @classmethod
    def gender_in_value_set(cls, v: str | None) -> str | None:
        return _decode_gender(v)

    @model_validator(mode="after")
    def choice_types_exclusive(self):
        if self.deceasedBoolean is not None and self.deceasedDateTime is not None:
            raise ValueError("deceased[x] allows only one of deceasedBoolean, deceasedDateTime")
        if self.multipleBirthBoolean is not None and self.multipleBirthInteger is not None:
            raise ValueError(
                "multipleBirth[x] allows only one of multipleBirthBoolean, multipleBirthInteger",
            )
        return self

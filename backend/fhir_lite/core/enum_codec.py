"""Enum Codec — strict bidirectional mapping between wire codes and a closed Enum.

Invariants:
    - decode(None) is None; any other input must match a member code case-insensitively
    - A non-matching value raises InvalidEnumValueError (client error), never ValueError
    - encode is total and injective: always the canonical lowercase code

Design Decisions:
    - No implicit decoding inside filters or payload parsing: call sites decode explicitly
      so the failure is always surfaced as a 400 (ADR: never a server error)
"""

from enum import Enum
from typing import Generic, TypeVar

from fhir_lite.core.domain_types import AdministrativeGender
from fhir_lite.core.errors import InvalidEnumValueError

E = TypeVar("E", bound=Enum)


class EnumCodec(Generic[E]):
    """Codec for one str-valued Enum, reporting failures at a FHIRPath location."""

    def __init__(self, enum_type: type[E], location: str):
        self._enum_type = enum_type
        self._by_code: dict[str, E] = {
            str(member.value).lower(): member for member in enum_type
        }
        self.location = location

    @property
    def allowed(self) -> tuple[str, ...]:
        return tuple(self._by_code)

    def decode(self, raw: str | None) -> E | None:
        if raw is None:
            return None
        member = self._by_code.get(raw.lower())
        if member is None:
            raise InvalidEnumValueError(raw, self.allowed, self.location)
        return member

    def encode(self, value: E) -> str:
        return str(value.value).lower()


GENDER_CODEC: EnumCodec[AdministrativeGender] = EnumCodec(
    AdministrativeGender, "Patient.gender",
)

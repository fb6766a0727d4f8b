"""Filter Compiler — SearchCriteria to the canonical filter document the engine consumes.

Invariants:
    - compile_filter is total and PURE: criteria are already validated
    - A key appears only when its criterion was supplied; _count/_offset always appear
    - Key order is stable: name, birthdate_ge, birthdate_le, gender, _count, _offset
    - serialize_filter emits int/float/bool unquoted and everything else as a quoted string

Design Decisions:
    - Filter keys keep the store's own vocabulary (birthdate_ge, _count) so the same
      document feeds both the table engine and the fhir_search() extension
"""

import json
from typing import Any

from fhir_lite.core.domain_types import AdministrativeGender
from fhir_lite.core.enum_codec import GENDER_CODEC, EnumCodec
from fhir_lite.core.search_criteria import SearchCriteria

FilterDocument = dict[str, Any]

FILTER_NAME = "name"
FILTER_BIRTHDATE_GE = "birthdate_ge"
FILTER_BIRTHDATE_LE = "birthdate_le"
FILTER_GENDER = "gender"
FILTER_COUNT = "_count"
FILTER_OFFSET = "_offset"


def compile_filter(
    criteria: SearchCriteria,
    codec: EnumCodec[AdministrativeGender] = GENDER_CODEC,
) -> FilterDocument:
    doc: FilterDocument = {}
    if criteria.name is not None:
        doc[FILTER_NAME] = criteria.name.lower()
    if criteria.birthdate_from is not None:
        doc[FILTER_BIRTHDATE_GE] = criteria.birthdate_from
    if criteria.birthdate_to is not None:
        doc[FILTER_BIRTHDATE_LE] = criteria.birthdate_to
    if criteria.category is not None:
        doc[FILTER_GENDER] = codec.encode(criteria.category)
    # page hints; the engine may page with them or ignore them
    doc[FILTER_COUNT] = criteria.effective_page_size
    doc[FILTER_OFFSET] = criteria.effective_page_offset
    return doc


def serialize_filter(doc: FilterDocument) -> str:
    """Compact JSON with type-tagged literals."""
    return json.dumps(
        {key: _literal(value) for key, value in doc.items()},
        separators=(",", ":"),
        ensure_ascii=False,
    )


def _literal(value: Any) -> Any:
    if isinstance(value, (bool, int, float)):
        return value
    return str(value)

"""Search Criteria — raw query parameters to validated, typed criteria.

Invariants:
    - Invalid raw input never reaches SearchCriteria: date shape, category and
      integers are all checked here, before any store call
    - Date bounds must match YYYY-MM-DD over the whole string, ASCII digits only
    - Page parameters must be plain ASCII integers: no "_", whitespace or other digits
    - Page bounds: size clamped to [1, 100], offset clamped to [0, inf)
    - Canonical FHIR parameter names win over their aliases when both are sent

Design Decisions:
    - fullmatch with [0-9] instead of match with \\d and $: \\d accepts non-ASCII digits
      and $ accepts a trailing newline
    - Clamping lives on the criteria (effective_*) so the compiler and the link
      builder can never disagree about the page actually served
"""

import re
from dataclasses import dataclass
from typing import Mapping

from fhir_lite.core.domain_types import AdministrativeGender
from fhir_lite.core.enum_codec import GENDER_CODEC, EnumCodec
from fhir_lite.core.errors import InvalidDateShapeError, InvalidParameterError


DATE_SHAPE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")
INTEGER_SHAPE = re.compile(r"-?[0-9]+")

DEFAULT_PAGE_SIZE: int = 20
MIN_PAGE_SIZE: int = 1
MAX_PAGE_SIZE: int = 100

# ─── Wire parameter names ───────────────────────────────────────

PARAM_NAME = "name"
PARAM_GENDER = "gender"
PARAM_BIRTHDATE_GE = "birthdate:ge"
PARAM_BIRTHDATE_LE = "birthdate:le"
PARAM_COUNT = "_count"
PARAM_OFFSET = "_offset"

PARAM_ALIASES: dict[str, str] = {
    "category": PARAM_GENDER,
    "birthdate-from": PARAM_BIRTHDATE_GE,
    "birthdate-to": PARAM_BIRTHDATE_LE,
    "page-size": PARAM_COUNT,
    "page-offset": PARAM_OFFSET,
}


def validate_date_shape(raw: str) -> bool:
    return DATE_SHAPE.fullmatch(raw) is not None


def clamp_page_size(size: int) -> int:
    return max(MIN_PAGE_SIZE, min(MAX_PAGE_SIZE, size))


def clamp_page_offset(offset: int) -> int:
    return max(0, offset)


@dataclass(frozen=True)
class SearchCriteria:
    """Validated search request. Field order is the filter key order."""
    name: str | None = None
    birthdate_from: str | None = None
    birthdate_to: str | None = None
    category: AdministrativeGender | None = None
    page_size: int = DEFAULT_PAGE_SIZE
    page_offset: int = 0

    @property
    def effective_page_size(self) -> int:
        return clamp_page_size(self.page_size)

    @property
    def effective_page_offset(self) -> int:
        return clamp_page_offset(self.page_offset)


def fold_aliases(raw: Mapping[str, str]) -> dict[str, str]:
    """Map alias parameter names onto canonical ones. Unknown names pass through."""
    folded: dict[str, str] = {}
    for key, value in raw.items():
        if key in PARAM_ALIASES:
            folded.setdefault(PARAM_ALIASES[key], value)
        else:
            folded[key] = value
    return folded


def parse_search_criteria(
    raw: Mapping[str, str],
    codec: EnumCodec[AdministrativeGender] = GENDER_CODEC,
) -> SearchCriteria:
    """Validate raw query parameters. Raises ClientError subclasses on bad input."""
    params = fold_aliases(raw)

    category = codec.decode(params.get(PARAM_GENDER))

    for parameter in (PARAM_BIRTHDATE_GE, PARAM_BIRTHDATE_LE):
        value = params.get(parameter)
        if value is not None and not validate_date_shape(value):
            raise InvalidDateShapeError(parameter, value)

    return SearchCriteria(
        name=params.get(PARAM_NAME),
        birthdate_from=params.get(PARAM_BIRTHDATE_GE),
        birthdate_to=params.get(PARAM_BIRTHDATE_LE),
        category=category,
        page_size=_parse_int(params, PARAM_COUNT, DEFAULT_PAGE_SIZE),
        page_offset=_parse_int(params, PARAM_OFFSET, 0),
    )


def _parse_int(params: Mapping[str, str], parameter: str, default: int) -> int:
    raw = params.get(parameter)
    if raw is None:
        return default
    if INTEGER_SHAPE.fullmatch(raw) is None:
        raise InvalidParameterError(parameter, f"must be an integer (got '{raw}')")
    return int(raw)

"""Searchset Bundle — link construction and envelope shape, pure.

Invariants:
    - self link re-serializes every supplied criterion plus the effective _count/_offset
    - next link exists iff offset + size < total, and only ever differs from self in _offset
    - No previous link: pagination is forward-only
    - Offset replacement is structural (parse → replace → re-encode), never text substitution

Design Decisions:
    - ':' left unescaped in query strings so birthdate:ge stays readable in links
"""

from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from fhir_lite.core.domain_types import AdministrativeGender, LinkRelation
from fhir_lite.core.enum_codec import GENDER_CODEC, EnumCodec
from fhir_lite.core.search_criteria import (
    PARAM_BIRTHDATE_GE,
    PARAM_BIRTHDATE_LE,
    PARAM_COUNT,
    PARAM_GENDER,
    PARAM_NAME,
    PARAM_OFFSET,
    SearchCriteria,
)

BUNDLE_TYPE_SEARCHSET = "searchset"
_QUERY_SAFE = ":"


def _encode_query(pairs: list[tuple[str, str]]) -> str:
    return urlencode(pairs, safe=_QUERY_SAFE)


def build_self_link(
    base_url: str,
    criteria: SearchCriteria,
    codec: EnumCodec[AdministrativeGender] = GENDER_CODEC,
) -> str:
    pairs: list[tuple[str, str]] = []
    if criteria.name is not None:
        pairs.append((PARAM_NAME, criteria.name))
    if criteria.category is not None:
        pairs.append((PARAM_GENDER, codec.encode(criteria.category)))
    if criteria.birthdate_from is not None:
        pairs.append((PARAM_BIRTHDATE_GE, criteria.birthdate_from))
    if criteria.birthdate_to is not None:
        pairs.append((PARAM_BIRTHDATE_LE, criteria.birthdate_to))
    pairs.append((PARAM_COUNT, str(criteria.effective_page_size)))
    pairs.append((PARAM_OFFSET, str(criteria.effective_page_offset)))
    return f"{base_url}?{_encode_query(pairs)}"


def replace_query_param(url: str, key: str, value: str) -> str:
    """Replace every occurrence of one query parameter, appending it if absent."""
    parts = urlsplit(url)
    pairs = parse_qsl(parts.query, keep_blank_values=True)
    replaced: list[tuple[str, str]] = []
    seen = False
    for k, v in pairs:
        if k == key:
            if not seen:
                replaced.append((k, value))
                seen = True
            continue
        replaced.append((k, v))
    if not seen:
        replaced.append((key, value))
    return urlunsplit(parts._replace(query=_encode_query(replaced)))


def has_next_page(criteria: SearchCriteria, total: int) -> bool:
    return criteria.effective_page_offset + criteria.effective_page_size < total


def next_offset(criteria: SearchCriteria) -> int:
    return criteria.effective_page_offset + criteria.effective_page_size


def build_next_link(self_link: str, criteria: SearchCriteria) -> str:
    return replace_query_param(self_link, PARAM_OFFSET, str(next_offset(criteria)))


def build_links(
    self_link: str, criteria: SearchCriteria, total: int,
) -> list[dict[str, str]]:
    links = [{"relation": LinkRelation.SELF.value, "url": self_link}]
    if has_next_page(criteria, total):
        links.append({
            "relation": LinkRelation.NEXT.value,
            "url": build_next_link(self_link, criteria),
        })
    return links


def build_entry(full_url: str, resource: dict[str, Any]) -> dict[str, Any]:
    return {"fullUrl": full_url, "resource": resource, "search": {"mode": "match"}}


def build_searchset(
    total: int, entries: list[dict[str, Any]], links: list[dict[str, str]],
) -> dict[str, Any]:
    return {
        "resourceType": "Bundle",
        "type": BUNDLE_TYPE_SEARCHSET,
        "total": total,
        "link": links,
        "entry": entries,
    }

"""Searchset Bundle — verifies self/next link construction and Bundle shape.

Tests:
    - self link carries every supplied criterion plus effective _count/_offset
    - next link present iff offset + size < total, differing from self only in _offset
    - _offset replaced structurally: a name value that looks like an offset is untouched
    - Empty result: self link only, no entries
"""

from urllib.parse import parse_qsl, urlsplit

from fhir_lite.core.bundle import (
    build_entry,
    build_links,
    build_next_link,
    build_searchset,
    build_self_link,
    has_next_page,
    replace_query_param,
)
from fhir_lite.core.domain_types import AdministrativeGender
from fhir_lite.core.search_criteria import SearchCriteria

BASE = "http://test/fhir/Patient"


def _query(url: str) -> list[tuple[str, str]]:
    return parse_qsl(urlsplit(url).query, keep_blank_values=True)


# ─── self link ───────────────────────────────────────────────────

def test_self_link_defaults():
    assert build_self_link(BASE, SearchCriteria()) == f"{BASE}?_count=20&_offset=0"


def test_self_link_carries_all_criteria_in_order():
    criteria = SearchCriteria(
        name="Alpha",
        birthdate_from="1980-01-01",
        birthdate_to="1990-12-31",
        category=AdministrativeGender.FEMALE,
        page_size=5,
        page_offset=10,
    )
    assert build_self_link(BASE, criteria) == (
        f"{BASE}?name=Alpha&gender=female&birthdate:ge=1980-01-01"
        f"&birthdate:le=1990-12-31&_count=5&_offset=10"
    )


def test_self_link_uses_effective_page_values():
    link = build_self_link(BASE, SearchCriteria(page_size=500, page_offset=-1))
    assert dict(_query(link)) == {"_count": "100", "_offset": "0"}


def test_self_link_escapes_values():
    link = build_self_link(BASE, SearchCriteria(name="van der Berg&co"))
    assert dict(_query(link))["name"] == "van der Berg&co"


# ─── next link ───────────────────────────────────────────────────

def test_next_only_when_more_results():
    criteria = SearchCriteria(page_size=5, page_offset=0)
    assert has_next_page(criteria, 6)
    assert not has_next_page(criteria, 5)
    assert not has_next_page(SearchCriteria(page_size=5, page_offset=5), 6)


def test_next_link_differs_only_in_offset():
    criteria = SearchCriteria(name="alpha", page_size=5, page_offset=0)
    self_link = build_self_link(BASE, criteria)
    next_link = build_next_link(self_link, criteria)
    self_pairs = _query(self_link)
    next_pairs = _query(next_link)
    assert [k for k, _ in self_pairs] == [k for k, _ in next_pairs]
    assert dict(next_pairs)["_offset"] == "5"
    assert {k: v for k, v in self_pairs if k != "_offset"} == \
        {k: v for k, v in next_pairs if k != "_offset"}


def test_offset_replacement_is_structural():
    criteria = SearchCriteria(name="_offset=0", page_size=5, page_offset=0)
    self_link = build_self_link(BASE, criteria)
    next_link = build_next_link(self_link, criteria)
    pairs = dict(_query(next_link))
    assert pairs["name"] == "_offset=0"
    assert pairs["_offset"] == "5"


def test_replace_query_param_drops_duplicates_and_appends_when_absent():
    assert replace_query_param(f"{BASE}?_offset=1&a=b&_offset=2", "_offset", "9") == \
        f"{BASE}?_offset=9&a=b"
    assert replace_query_param(f"{BASE}?a=b", "_offset", "9") == f"{BASE}?a=b&_offset=9"


def test_build_links_relations():
    criteria = SearchCriteria(page_size=5)
    self_link = build_self_link(BASE, criteria)
    assert [link["relation"] for link in build_links(self_link, criteria, 6)] == ["self", "next"]
    assert [link["relation"] for link in build_links(self_link, criteria, 5)] == ["self"]


# ─── Bundle shape ────────────────────────────────────────────────

def test_empty_searchset():
    self_link = build_self_link(BASE, SearchCriteria())
    bundle = build_searchset(0, [], build_links(self_link, SearchCriteria(), 0))
    assert bundle == {
        "resourceType": "Bundle",
        "type": "searchset",
        "total": 0,
        "link": [{"relation": "self", "url": self_link}],
        "entry": [],
    }


def test_entry_shape():
    resource = {"resourceType": "Patient", "id": "p1"}
    assert build_entry(f"{BASE}/p1", resource) == {
        "fullUrl": f"{BASE}/p1",
        "resource": resource,
        "search": {"mode": "match"},
    }


def test_offset_value_elsewhere_in_url_is_untouched():
    criteria = SearchCriteria(name="5", page_size=5, page_offset=5)
    self_link = build_self_link(BASE, criteria)
    next_link = build_next_link(self_link, criteria)
    assert next_link == f"{BASE}?name=5&_count=5&_offset=10"

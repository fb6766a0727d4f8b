"""Document Engines — put/get/search/count implementations behind the DocumentEngine protocol.

Invariants:
    - put assigns a fresh UUID and writes it into the document's id; ids are never reused
    - TableDocumentEngine persists meta.versionId="1" / meta.lastUpdated on put when
      absent, so create-then-fetch observes one stable lastUpdated
    - search and count apply the same filter clauses; only search applies _count/_offset
    - Filter literals are type-tagged: _count/_offset must be JSON integers, the rest strings
    - Every SQLAlchemy failure leaves as EngineUnavailableError or MalformedDocumentError

Design Decisions:
    - Two engines, one protocol: the portable ORM table (default, runs on SQLite) and the
      PostgreSQL fhir_* extension functions the service originally targeted
    - Unknown filter keys are ignored rather than rejected: the filter vocabulary may grow
      ahead of the engine
"""

import json
import logging
import uuid
from typing import Any, Callable

from sqlalchemy import func, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from fhir_lite.config import Settings
from fhir_lite.core.domain_types import INITIAL_VERSION_ID, ResourceId
from fhir_lite.core.envelope import format_instant, utcnow
from fhir_lite.core.errors import MalformedDocumentError
from fhir_lite.core.filter_compiler import (
    FILTER_BIRTHDATE_GE,
    FILTER_BIRTHDATE_LE,
    FILTER_COUNT,
    FILTER_GENDER,
    FILTER_NAME,
    FILTER_OFFSET,
)
from fhir_lite.core.repository_protocols import DocumentEngine
from fhir_lite.infrastructure.database import translate_db_errors
from fhir_lite.models.stored_resource import StoredResource

logger = logging.getLogger(__name__)

_STRING_FILTERS = (FILTER_NAME, FILTER_GENDER, FILTER_BIRTHDATE_GE, FILTER_BIRTHDATE_LE)
_INTEGER_FILTERS = (FILTER_COUNT, FILTER_OFFSET)
_NAME_PARTS = ("text", "family")
_NAME_LISTS = ("given", "prefix", "suffix")


def _utcnow_instant() -> str:
    return format_instant(utcnow())


def load_document(document: str) -> dict[str, Any]:
    try:
        body = json.loads(document)
    except json.JSONDecodeError as e:
        raise MalformedDocumentError(f"not JSON ({e.msg})") from e
    if not isinstance(body, dict):
        raise MalformedDocumentError("document must be a JSON object")
    return body


def load_filter(filter_json: str) -> dict[str, Any]:
    """Parse and type-check a filter document."""
    try:
        filters = json.loads(filter_json)
    except json.JSONDecodeError as e:
        raise MalformedDocumentError(f"filter is not JSON ({e.msg})") from e
    if not isinstance(filters, dict):
        raise MalformedDocumentError("filter must be a JSON object")
    for key in _INTEGER_FILTERS:
        value = filters.get(key)
        if value is not None and (isinstance(value, bool) or not isinstance(value, int)):
            raise MalformedDocumentError(f"filter {key} must be an integer literal")
    for key in _STRING_FILTERS:
        value = filters.get(key)
        if value is not None and not isinstance(value, str):
            raise MalformedDocumentError(f"filter {key} must be a string literal")
    unknown = set(filters) - set(_STRING_FILTERS) - set(_INTEGER_FILTERS)
    if unknown:
        logger.debug(f"Ignoring unknown filter keys: {sorted(unknown)}")
    return filters


def extract_search_columns(body: dict[str, Any]) -> dict[str, str | None]:
    """Derive name_index / gender / birth_date from a Patient-shaped body."""
    parts: list[str] = []
    names = body.get("name")
    if isinstance(names, list):
        for name in names:
            if not isinstance(name, dict):
                continue
            parts.extend(
                name[key] for key in _NAME_PARTS if isinstance(name.get(key), str)
            )
            for key in _NAME_LISTS:
                values = name.get(key)
                if isinstance(values, list):
                    parts.extend(v for v in values if isinstance(v, str))
    gender = body.get("gender")
    birth_date = body.get("birthDate")
    return {
        "name_index": " ".join(parts).lower() or None,
        "gender": gender.lower() if isinstance(gender, str) else None,
        "birth_date": birth_date if isinstance(birth_date, str) else None,
    }


def stamp_meta(body: dict[str, Any], now: Callable[[], str] = _utcnow_instant) -> None:
    """Fill meta.versionId / meta.lastUpdated in place when absent."""
    meta = body.get("meta")
    if not isinstance(meta, dict):
        meta = {}
    if meta.get("versionId") is None:
        meta["versionId"] = INITIAL_VERSION_ID
    if meta.get("lastUpdated") is None:
        meta["lastUpdated"] = now()
    body["meta"] = meta


# ─── Table engine ────────────────────────────────────────────────

class TableDocumentEngine:
    """DocumentEngine over the stored_resources table."""

    def __init__(
        self, db: AsyncSession, now: Callable[[], str] = _utcnow_instant,
    ):
        self._db = db
        self._now = now

    async def put(self, kind: str, document: str) -> ResourceId:
        body = load_document(document)
        resource_id = ResourceId(uuid.uuid4())
        body["id"] = str(resource_id)
        stamp_meta(body, self._now)
        row = StoredResource(
            id=resource_id, kind=kind, body=body, **extract_search_columns(body),
        )
        async with translate_db_errors("put"):
            self._db.add(row)
            await self._db.commit()
        return resource_id

    async def get(self, kind: str, resource_id: ResourceId) -> str | None:
        async with translate_db_errors("get"):
            row = await self._db.get(StoredResource, resource_id)
        if row is None or row.kind != kind:
            return None
        return json.dumps(row.body, ensure_ascii=False)

    async def search(self, kind: str, filter_json: str) -> list[ResourceId]:
        filters = load_filter(filter_json)
        stmt = (
            select(StoredResource.id)
            .where(*self._clauses(kind, filters))
            .order_by(StoredResource.created_at, StoredResource.id)
        )
        if filters.get(FILTER_COUNT) is not None:
            stmt = stmt.limit(filters[FILTER_COUNT])
        if filters.get(FILTER_OFFSET):
            stmt = stmt.offset(filters[FILTER_OFFSET])
        async with translate_db_errors("search"):
            result = await self._db.execute(stmt)
            return [ResourceId(rid) for rid in result.scalars().all()]

    async def count(self, kind: str, filter_json: str) -> int:
        filters = load_filter(filter_json)
        stmt = (
            select(func.count())
            .select_from(StoredResource)
            .where(*self._clauses(kind, filters))
        )
        async with translate_db_errors("count"):
            result = await self._db.execute(stmt)
            return int(result.scalar_one())

    @staticmethod
    def _clauses(kind: str, filters: dict[str, Any]) -> list:
        clauses = [StoredResource.kind == kind]
        if filters.get(FILTER_NAME) is not None:
            clauses.append(
                StoredResource.name_index.contains(
                    filters[FILTER_NAME].lower(), autoescape=True,
                ),
            )
        if filters.get(FILTER_GENDER) is not None:
            clauses.append(StoredResource.gender == filters[FILTER_GENDER])
        if filters.get(FILTER_BIRTHDATE_GE) is not None:
            clauses.append(StoredResource.birth_date >= filters[FILTER_BIRTHDATE_GE])
        if filters.get(FILTER_BIRTHDATE_LE) is not None:
            clauses.append(StoredResource.birth_date <= filters[FILTER_BIRTHDATE_LE])
        return clauses


# ─── PostgreSQL extension engine ─────────────────────────────────

def _as_uuid(value: Any) -> uuid.UUID:
    return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))


class PgFunctionDocumentEngine:
    """DocumentEngine over the fhir_put/fhir_get/fhir_search/fhir_count SQL functions."""

    def __init__(self, db: AsyncSession, schema: str = "fhir_ext"):
        self._db = db
        self._schema = schema

    def _fn(self, name: str) -> str:
        return f"{self._schema}.{name}"

    async def put(self, kind: str, document: str) -> ResourceId:
        stmt = text(
            f"select cast({self._fn('fhir_put')}(:kind, cast(:body as jsonb)) as uuid)",
        )
        async with translate_db_errors("put"):
            result = await self._db.execute(stmt, {"kind": kind, "body": document})
            resource_id = result.scalar_one()
            await self._db.commit()
        return ResourceId(_as_uuid(resource_id))

    async def get(self, kind: str, resource_id: ResourceId) -> str | None:
        stmt = text(
            f"select cast({self._fn('fhir_get')}(:kind, cast(:id as uuid)) as text)",
        )
        async with translate_db_errors("get"):
            result = await self._db.execute(stmt, {"kind": kind, "id": str(resource_id)})
            return result.scalar_one_or_none()

    async def search(self, kind: str, filter_json: str) -> list[ResourceId]:
        stmt = text(
            f"select * from {self._fn('fhir_search')}(:kind, cast(:filters as jsonb))",
        )
        async with translate_db_errors("search"):
            result = await self._db.execute(stmt, {"kind": kind, "filters": filter_json})
            return [ResourceId(_as_uuid(row[0])) for row in result.all()]

    async def count(self, kind: str, filter_json: str) -> int:
        stmt = text(
            f"select {self._fn('fhir_count')}(:kind, cast(:filters as jsonb))",
        )
        async with translate_db_errors("count"):
            result = await self._db.execute(stmt, {"kind": kind, "filters": filter_json})
            return int(result.scalar_one_or_none() or 0)


def build_document_engine(db: AsyncSession, settings: Settings) -> DocumentEngine:
    if settings.document_engine == "pg_functions":
        return PgFunctionDocumentEngine(db, settings.pg_function_schema)
    return TableDocumentEngine(db)

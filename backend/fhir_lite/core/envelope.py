"""Envelope Manager — version metadata normalization and cache validators.

Invariants:
    - normalize is PURE and idempotent: returns a new document, never mutates its input
    - Existing non-null versionId/lastUpdated are never overwritten or re-rendered (store wins)
    - Fallback values are presentation-only: nothing here writes back to storage
    - last_modified is None when the stored lastUpdated cannot be read as a datetime
      (e.g. a leap second); the response then simply omits Last-Modified

Design Decisions:
    - now injected as a callable: deterministic tests without freezing the clock
    - Fallback lastUpdated is synthesized per call, so two reads of a never-versioned
      document may differ unless the store persisted meta on put (see TableDocumentEngine)
"""

from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Callable

from pydantic import TypeAdapter, ValidationError

from fhir_lite.core.domain_types import INITIAL_VERSION_ID
from fhir_lite.core.resource_document import Meta, ResourceDocument

_DATETIME = TypeAdapter(datetime)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_instant(moment: datetime) -> str:
    """FHIR instant in UTC with millisecond precision, e.g. '2026-10-18T12:00:00.000Z'."""
    text = moment.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


def parse_instant(text: str) -> datetime | None:
    """Best-effort read of a stored instant. Naive values are taken as UTC."""
    try:
        moment = _DATETIME.validate_python(text)
    except ValidationError:
        return None
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def normalize(
    document: ResourceDocument, now: Callable[[], datetime] = utcnow,
) -> ResourceDocument:
    """Fill in versionId="1" and lastUpdated=now when absent."""
    meta = document.meta or Meta()
    updates: dict = {}
    if meta.version_id is None:
        updates["version_id"] = INITIAL_VERSION_ID
    if meta.last_updated is None:
        updates["last_updated"] = format_instant(now())
    if not updates and document.meta is not None:
        return document
    return document.model_copy(
        update={"meta": meta.model_copy(update=updates)},
    )


def etag(meta: Meta) -> str:
    """Weak validator wrapping the version id, e.g. W/"1"."""
    return f'W/"{meta.version_id or INITIAL_VERSION_ID}"'


def last_modified(meta: Meta) -> datetime | None:
    if meta.last_updated is None:
        return None
    return parse_instant(meta.last_updated)


def http_date(moment: datetime) -> str:
    """IMF-fixdate for Last-Modified, e.g. 'Sun, 18 Oct 2026 12:00:00 GMT'."""
    return format_datetime(moment.astimezone(timezone.utc), usegmt=True)

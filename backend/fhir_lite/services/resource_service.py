"""Resource Service — create, fetch-by-id and search for one resource kind.

Invariants:
    - Create: Received → Validated → Persisted → Normalized → Returned, or Rejected
      (TypeMismatch / InvalidPayload) before any engine call
    - Create always re-fetches the stored form; the input echo is never returned
    - Fetch of an unknown id returns None (a NotFound outcome), not an exception
    - Search compiles and serializes the filter once; search and count get the same text
    - Engine failures propagate unchanged: no retries at this layer

Design Decisions:
    - Collaborators passed to the constructor (engine, validator, codec, compiler,
      assembler): no ambient singleton lookup, fakes drop straight in for tests
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable

from fhir_lite.core.domain_types import (
    AdministrativeGender,
    PATIENT_KIND,
    ResourceId,
    ResultPage,
    ValidationIssue,
)
from fhir_lite.core.enum_codec import GENDER_CODEC, EnumCodec
from fhir_lite.core.envelope import etag, last_modified, normalize, utcnow
from fhir_lite.core.errors import (
    EngineError,
    ErrorContext,
    InvalidPayloadError,
    TypeMismatchError,
)
from fhir_lite.core.filter_compiler import FilterDocument, compile_filter, serialize_filter
from fhir_lite.core.repository_protocols import DocumentEngine, ResourceValidator
from fhir_lite.core.resource_document import ResourceDocument
from fhir_lite.core.search_criteria import SearchCriteria
from fhir_lite.services.bundle_assembler import BundleAssembler

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResourceEnvelope:
    """A normalized document plus the id it is stored under."""
    id: ResourceId
    document: ResourceDocument

    @property
    def etag(self) -> str:
        return etag(self.document.meta)

    @property
    def last_modified(self) -> datetime | None:
        return last_modified(self.document.meta)


def aggregate_issues(issues: list[ValidationIssue]) -> str:
    """Every issue, in order, never truncated."""
    return "Validation failed: " + "; ".join(i.describe() for i in issues)


class ResourceService:
    """Orchestrates validator, codec, compiler, engine and assembler."""

    def __init__(
        self,
        engine: DocumentEngine,
        validator: ResourceValidator,
        *,
        kind: str = PATIENT_KIND,
        codec: EnumCodec[AdministrativeGender] = GENDER_CODEC,
        compiler: Callable[..., FilterDocument] = compile_filter,
        assembler: BundleAssembler | None = None,
        now: Callable[[], datetime] = utcnow,
    ):
        self._engine = engine
        self._validator = validator
        self._kind = kind
        self._codec = codec
        self._compiler = compiler
        self._now = now
        self._assembler = assembler or BundleAssembler(engine, kind, codec, now)

    @property
    def kind(self) -> str:
        return self._kind

    # ─── Create ─────────────────────────────────────────────────

    async def create(self, payload: dict[str, Any]) -> ResourceEnvelope:
        declared = payload.get("resourceType")
        if declared != self._kind:
            raise TypeMismatchError(self._kind, declared)

        issues = self._validator.validate(payload)
        if any(i.severity.is_failure for i in issues):
            raise InvalidPayloadError(
                aggregate_issues(issues),
                location=[i.location for i in issues],
            )
        if issues:
            logger.info(
                f"Accepting {self._kind} with {len(issues)} non-blocking issue(s): "
                + "; ".join(i.describe() for i in issues),
            )

        resource_id = await self._engine.put(
            self._kind, json.dumps(payload, ensure_ascii=False),
        )
        logger.info(
            f"Persisted {self._kind}/{resource_id}",
            extra={"resource_id": str(resource_id)},
        )

        stored = await self._engine.get(self._kind, resource_id)
        if stored is None:
            raise EngineError(
                f"Persisted {self._kind} could not be read back",
                context=ErrorContext(resource_id=str(resource_id), kind=self._kind),
            )
        document = normalize(ResourceDocument.from_json(stored), self._now)
        return ResourceEnvelope(resource_id, document)

    # ─── Fetch ──────────────────────────────────────────────────

    async def fetch(self, resource_id: ResourceId) -> ResourceEnvelope | None:
        stored = await self._engine.get(self._kind, resource_id)
        if stored is None:
            logger.info(
                f"{self._kind}/{resource_id} not found",
                extra={"resource_id": str(resource_id)},
            )
            return None
        document = normalize(ResourceDocument.from_json(stored), self._now)
        return ResourceEnvelope(resource_id, document)

    # ─── Search ─────────────────────────────────────────────────

    async def search(
        self, criteria: SearchCriteria, base_url: str,
    ) -> dict[str, Any]:
        filter_json = serialize_filter(self._compiler(criteria, self._codec))
        ids = await self._engine.search(self._kind, filter_json)
        total = await self._engine.count(self._kind, filter_json)
        logger.debug(f"{self._kind} search {filter_json} matched {total}")
        # engines may ignore the _count hint
        page = ResultPage(tuple(ids[: criteria.effective_page_size]), total)
        return await self._assembler.assemble(page, criteria, base_url)

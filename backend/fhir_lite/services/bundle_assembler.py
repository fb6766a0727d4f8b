"""Bundle Assembler — turns a ResultPage into a searchset Bundle, fetching each entry.

Invariants:
    - total == 0 → empty entries, self link only, and zero engine.get calls
    - Ids that resolve to absent are dropped silently (store/query race), never fatal
    - Entries keep the engine's id order and pass through the Envelope Manager
    - Fetches are sequential: one AsyncSession cannot run concurrent statements
"""

import logging
from datetime import datetime
from typing import Any, Callable

from fhir_lite.core.bundle import (
    build_entry,
    build_links,
    build_searchset,
    build_self_link,
)
from fhir_lite.core.domain_types import AdministrativeGender, PATIENT_KIND, ResultPage
from fhir_lite.core.enum_codec import GENDER_CODEC, EnumCodec
from fhir_lite.core.envelope import normalize, utcnow
from fhir_lite.core.repository_protocols import DocumentEngine
from fhir_lite.core.resource_document import ResourceDocument
from fhir_lite.core.search_criteria import SearchCriteria

logger = logging.getLogger(__name__)


class BundleAssembler:
    """Builds searchset Bundles for one resource kind."""

    def __init__(
        self,
        engine: DocumentEngine,
        kind: str = PATIENT_KIND,
        codec: EnumCodec[AdministrativeGender] = GENDER_CODEC,
        now: Callable[[], datetime] = utcnow,
    ):
        self._engine = engine
        self._kind = kind
        self._codec = codec
        self._now = now

    async def assemble(
        self, page: ResultPage, criteria: SearchCriteria, base_url: str,
    ) -> dict[str, Any]:
        self_link = build_self_link(base_url, criteria, self._codec)
        if page.total == 0:
            return build_searchset(0, [], build_links(self_link, criteria, 0))

        entries = []
        for resource_id in page.ids:
            text = await self._engine.get(self._kind, resource_id)
            if text is None:
                logger.warning(
                    f"{self._kind}/{resource_id} matched but is gone; dropping entry",
                    extra={"resource_id": str(resource_id)},
                )
                continue
            document = normalize(ResourceDocument.from_json(text), self._now)
            entries.append(
                build_entry(f"{base_url}/{resource_id}", document.to_fhir()),
            )

        return build_searchset(
            page.total, entries, build_links(self_link, criteria, page.total),
        )

"""Canonical Resource Document — declared metadata fields plus an opaque pass-through region.

Invariants:
    - Only resourceType, id and meta are interpreted; every other element round-trips untouched
    - Meta.lastUpdated is kept as the stored text, byte for byte; it is parsed only
      when a Last-Modified header is built (envelope.last_modified)
    - to_fhir() emits wire aliases, declared fields first, null elements omitted

Design Decisions:
    - pydantic extra="allow" over a hand-written dict wrapper: declared fields get
      validation, the rest of the payload stays opaque (ADR: no reflection-based mapping)
    - lastUpdated as str, not datetime: FHIR instants allow leap seconds and more than
      six fractional digits, neither of which datetime can hold
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictStr, ValidationError

from fhir_lite.core.errors import MalformedDocumentError


class Meta(BaseModel):
    """Resource metadata block. profile/tag/security/source pass through."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    version_id: StrictStr | None = Field(None, alias="versionId")
    last_updated: StrictStr | None = Field(None, alias="lastUpdated")


class ResourceDocument(BaseModel):
    """A FHIR resource as stored and returned."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    resource_type: str = Field(alias="resourceType")
    id: str | None = None
    meta: Meta | None = None

    @classmethod
    def from_json(cls, text: str | bytes) -> "ResourceDocument":
        """Parse a stored document. The store handing back garbage is an engine fault."""
        try:
            return cls.model_validate_json(text)
        except ValidationError as exc:
            raise MalformedDocumentError(
                f"stored document unreadable ({exc.error_count()} error(s))",
            ) from exc

    def to_fhir(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

"""Boundary Protocols — contracts between core and shell.

Invariants:
    - Core NEVER imports from shell; dependency arrows point inward only
    - The document engine sees JSON text in both directions; parsing is the caller's job
    - search and count for one request must receive the identical filter text

Design Decisions:
    - Protocol over ABC: structural subtyping, test fakes need no inheritance
    - Engine methods async (implementations do IO); validator sync (pure CPU work)
"""

from typing import Any, Protocol

from fhir_lite.core.domain_types import ResourceId, ValidationIssue


class DocumentEngine(Protocol):
    """Contract for the opaque document store — implemented by infrastructure."""
    async def put(self, kind: str, document: str) -> ResourceId: ...
    async def get(self, kind: str, resource_id: ResourceId) -> str | None: ...
    async def search(self, kind: str, filter_json: str) -> list[ResourceId]: ...
    async def count(self, kind: str, filter_json: str) -> int: ...


class ResourceValidator(Protocol):
    """Contract for structural/profile validation. Empty list means ok."""
    def validate(self, document: dict[str, Any]) -> list[ValidationIssue]: ...

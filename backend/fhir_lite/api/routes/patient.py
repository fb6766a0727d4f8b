"""Patient Routes — create, read and search over the FHIR Patient endpoint.

Invariants:
    - Routes never contain business logic: parse the boundary, delegate to ResourceService
    - Every FHIR response uses application/fhir+json
    - create/read responses carry ETag (weak, versionId) and Last-Modified
    - Unknown search parameters are ignored

Design Decisions:
    - Raw body read instead of a pydantic body model: the payload stays opaque until
      the validator sees it, and malformed JSON maps to InvalidPayload, not 422
    - Query parameters read from request.query_params so FHIR names like birthdate:ge
      and their aliases resolve in one place (parse_search_criteria)
"""

import json
import logging
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from fhir_lite.api.responses import FhirJSONResponse
from fhir_lite.config import get_settings
from fhir_lite.core.domain_types import PATIENT_KIND, ResourceId
from fhir_lite.core.envelope import http_date
from fhir_lite.core.errors import InvalidPayloadError
from fhir_lite.core.operation_outcome import not_found
from fhir_lite.core.search_criteria import parse_search_criteria
from fhir_lite.infrastructure.database import get_db
from fhir_lite.infrastructure.document_engine import build_document_engine
from fhir_lite.services.resource_service import ResourceEnvelope, ResourceService
from fhir_lite.services.validation import PatientValidator

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix=f"{get_settings().fhir_base_path}/{PATIENT_KIND}", tags=["patient"],
)


def get_resource_service(db: AsyncSession = Depends(get_db)) -> ResourceService:
    """FastAPI dependency: one service per request, bound to the request's session."""
    engine = build_document_engine(db, get_settings())
    return ResourceService(engine, PatientValidator(), kind=PATIENT_KIND)


def resource_base_url() -> str:
    settings = get_settings()
    return f"{settings.public_base_url}{settings.fhir_base_path}/{PATIENT_KIND}"


def _envelope_headers(envelope: ResourceEnvelope) -> dict[str, str]:
    headers = {"ETag": envelope.etag}
    if envelope.last_modified is not None:
        headers["Last-Modified"] = http_date(envelope.last_modified)
    return headers


async def _read_json_object(request: Request) -> dict[str, Any]:
    raw = await request.body()
    if not raw.strip():
        raise InvalidPayloadError("Request body is empty")
    try:
        payload = json.loads(raw)
    except ValueError as e:
        raise InvalidPayloadError(f"Request body is not valid JSON: {e}") from None
    if not isinstance(payload, dict):
        raise InvalidPayloadError("Request body must be a JSON object")
    return payload


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_patient(
    request: Request, service: ResourceService = Depends(get_resource_service),
):
    """Create a Patient. The stored form, not the input echo, is returned."""
    payload = await _read_json_object(request)
    envelope = await service.create(payload)
    return FhirJSONResponse(
        status_code=status.HTTP_201_CREATED,
        content=envelope.document.to_fhir(),
        headers={
            "Location": f"{resource_base_url()}/{envelope.id}",
            **_envelope_headers(envelope),
        },
    )


@router.get("/{resource_id}")
async def read_patient(
    resource_id: UUID, service: ResourceService = Depends(get_resource_service),
):
    """Read a Patient by id. Unknown ids yield a not-found OperationOutcome."""
    envelope = await service.fetch(ResourceId(resource_id))
    if envelope is None:
        return FhirJSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content=not_found(f"{PATIENT_KIND}/{resource_id}"),
        )
    return FhirJSONResponse(
        content=envelope.document.to_fhir(), headers=_envelope_headers(envelope),
    )


@router.get("")
async def search_patients(
    request: Request, service: ResourceService = Depends(get_resource_service),
):
    """Search Patients; returns a searchset Bundle with self/next links."""
    criteria = parse_search_criteria(request.query_params)
    bundle = await service.search(criteria, resource_base_url())
    return FhirJSONResponse(content=bundle)

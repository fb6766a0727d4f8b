"""FHIR Responses — JSONResponse carrying the FHIR media type."""

from fastapi.responses import JSONResponse

from fhir_lite.core.domain_types import FHIR_MEDIA_TYPE


class FhirJSONResponse(JSONResponse):
    media_type = FHIR_MEDIA_TYPE

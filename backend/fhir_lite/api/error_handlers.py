"""Error Handlers — global exception handlers rendering OperationOutcome.

Invariants:
    - FhirLiteError → its own OperationOutcome and http_status
    - RequestValidationError → 400 OperationOutcome, one issue per offending field
    - Exception (catch-all) → 500 OperationOutcome that never leaks internal details
      (request_id_middleware renders the same outcome first, with X-Request-ID bound)

Design Decisions:
    - Three-layer handler: domain (FhirLiteError), validation (Pydantic), catch-all (Exception)
    - Client errors logged at warning, engine errors at error: 4xx are not incidents
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError

from fhir_lite.api.responses import FhirJSONResponse
from fhir_lite.core.domain_types import IssueCode, IssueSeverity
from fhir_lite.core.errors import ClientError, FhirLiteError
from fhir_lite.core.operation_outcome import build_issue, internal_error, operation_outcome

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""
    _register_domain_error_handler(app)
    _register_validation_error_handler(app)
    _register_generic_error_handler(app)


def _register_domain_error_handler(app: FastAPI) -> None:
    """Register FHIR Lite domain/engine error handler."""

    @app.exception_handler(FhirLiteError)
    async def fhir_lite_error_handler(request: Request, exc: FhirLiteError):
        log = logger.warning if isinstance(exc, ClientError) else logger.error
        log(
            f"{type(exc).__name__}: {exc.message}",
            extra={"error_code": exc.code, "path": request.url.path},
        )
        return FhirJSONResponse(
            status_code=exc.http_status, content=exc.to_operation_outcome(),
        )


def _register_validation_error_handler(app: FastAPI) -> None:
    """Register request validation error handler (path/query typing)."""

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError,
    ):
        logger.warning(
            f"Validation error on {request.url.path}: {exc.errors()}",
        )
        return FhirJSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=build_validation_outcome(exc),
        )


def _register_generic_error_handler(app: FastAPI) -> None:
    """Register catch-all error handler."""

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        """Catch-all — never leaks internal details."""
        logger.error(
            f"Unhandled exception on {request.url.path}: {exc}",
            exc_info=True,
        )
        return FhirJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=internal_error(),
        )


def build_validation_outcome(exc: RequestValidationError) -> dict:
    """One OperationOutcome issue per failing request field."""
    return operation_outcome(*(
        build_issue(
            IssueSeverity.ERROR,
            IssueCode.INVALID,
            e["msg"],
            [".".join(str(loc) for loc in e["loc"])],
        )
        for e in exc.errors()
    ))

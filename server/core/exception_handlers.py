from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from server.models.responses import ErrorResponse
from shared.exceptions.errors import (
    DocuRAGError,
    EmbeddingServiceError,
    ExtractionError,
    GenerationServiceError,
    NoDocumentsError,
    SessionNotFoundError,
    VectorStoreError,
)

# first match wins; anything else is a 500
_STATUS_BY_ERROR: list[tuple[type[DocuRAGError], int]] = [
    (SessionNotFoundError, 404),
    (NoDocumentsError, 400),
    (ExtractionError, 400),
    (EmbeddingServiceError, 502),
    (GenerationServiceError, 502),
    (VectorStoreError, 502),
]

GENERIC_ERROR_MESSAGE = "Error processing your request"


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump(by_alias=True))


def status_for_error(exc: DocuRAGError) -> int:
    return next((status for error_type, status in _STATUS_BY_ERROR if isinstance(exc, error_type)), 500)


async def handle_docurag_error(request: Request, exc: DocuRAGError) -> JSONResponse:
    """Map the error taxonomy to HTTP statuses.

    Client errors carry the error message; upstream and internal failures are
    logged with detail and answered with a generic message.
    """
    status_code = status_for_error(exc)
    if status_code >= 500:
        request.app.state.logging.error("%s %s failed: %s", request.method, request.url.path, exc)
        return error_response(status_code, GENERIC_ERROR_MESSAGE)
    request.app.state.logging.warning("%s %s rejected: %s", request.method, request.url.path, exc)
    return error_response(status_code, str(exc))


async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:
    return error_response(exc.status_code, str(exc.detail))


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(part) for part in first.get("loc", ())[1:]) or "request"
    return error_response(400, f"Invalid {field}: {first.get('msg', 'validation failed')}")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DocuRAGError, handle_docurag_error)
    app.add_exception_handler(HTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_validation_error)

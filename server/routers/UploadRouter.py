from fastapi import APIRouter, File, Form, HTTPException, Request, UploadFile

from server.models.responses import UploadResponse

router = APIRouter(prefix="/upload", tags=["upload"])

PDF_CONTENT_TYPE = "application/pdf"


@router.post("")
async def upload_document(
    request: Request,
    pdf: UploadFile = File(...),
    session_id: str | None = Form(default=None, alias="sessionId"),
) -> UploadResponse:
    """Ingest an uploaded PDF into the given session, or into a new one.

    Args:
        request (Request): FastAPI request (provides app.state.ingestion_service).
        pdf (UploadFile): The multipart PDF file.
        session_id (str | None): Existing session to add the document to.

    Returns:
        UploadResponse: The owning session id and the new collection name.

    Raises:
        HTTPException: 400 for non-PDF uploads, 413 if the file exceeds UPLOAD_MAX_BYTES.
    """
    helper_config = request.app.state.helper_config
    max_bytes = helper_config.get_int_val("UPLOAD_MAX_BYTES", default=10 * 1024 * 1024, minimum=1)

    if pdf.content_type != PDF_CONTENT_TYPE:
        raise HTTPException(status_code=400, detail="Only PDF files are allowed")

    # read one byte past the cap so oversized files are detected without buffering them fully
    pdf_bytes = await pdf.read(max_bytes + 1)
    if len(pdf_bytes) > max_bytes:
        raise HTTPException(status_code=413, detail=f"File exceeds the upload limit of {max_bytes} bytes")

    ingestion_service = request.app.state.ingestion_service
    result = await ingestion_service.ingest(pdf_bytes, pdf.filename or "document.pdf", session_id=session_id or None)
    return UploadResponse(
        session_id=result.session_id,
        collection_name=result.collection_name,
        message="PDF processed successfully",
    )

from fastapi import APIRouter, Request

from server.models.requests import CleanupRequest
from server.models.responses import CleanupResponse

router = APIRouter(prefix="/cleanup", tags=["cleanup"])


@router.post("")
async def cleanup_session(request: Request, body: CleanupRequest) -> CleanupResponse:
    """Delete a session and all collections it owns.

    Failed collection deletions do not fail the request; they are listed in warnings.
    """
    cleanup_service = request.app.state.cleanup_service
    result = await cleanup_service.cleanup(body.session_id)
    return CleanupResponse(
        deleted_collections=result.deleted_collections,
        warnings=result.warnings,
        message="Session cleaned up successfully" if not result.warnings else "Session cleaned up with warnings",
    )

from fastapi import APIRouter, Request

from server.models.responses import HealthResponse

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health(request: Request) -> HealthResponse:
    return HealthResponse(status="ok", sessions=len(request.app.state.registry))

import json
from contextlib import aclosing
from typing import AsyncIterator

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, StreamingResponse

from server.models.requests import ChatRequest
from server.models.responses import ChatResponse
from shared.models.chat import ChatContext, ChatStreamEvent

router = APIRouter(prefix="/chat", tags=["chat"])

SSE_DONE = "data: [DONE]\n\n"


def format_sse_event(event: ChatStreamEvent) -> str:
    """Render one stream event as an SSE data frame.

    Error events additionally carry success=false so clients can treat them
    like the JSON error responses.
    """
    payload = event.model_dump(by_alias=True, exclude_none=True)
    if event.type == "error":
        payload["success"] = False
    return f"data: {json.dumps(payload)}\n\n"


async def _sse_frames(chat_service, context: ChatContext) -> AsyncIterator[str]:
    async with aclosing(chat_service.stream_answer(context)) as events:
        async for event in events:
            yield format_sse_event(event)
    yield SSE_DONE


@router.post("")
async def chat(request: Request, body: ChatRequest):
    """Answer a question about the documents of a session.

    Retrieval runs before the response starts, so unknown sessions and empty
    sessions are reported as regular JSON errors. The answer itself is sent as
    server-sent events unless stream is false.

    Args:
        request (Request): FastAPI request (provides app.state.chat_service).
        body (ChatRequest): JSON body with sessionId, message and stream flag.

    Returns:
        StreamingResponse | JSONResponse: The SSE stream or the full answer.
    """
    chat_service = request.app.state.chat_service

    if not body.stream:
        result = await chat_service.chat(body.session_id, body.message)
        response = ChatResponse(response=result.response, sources=result.sources)
        return JSONResponse(content=response.model_dump(by_alias=True))

    context = await chat_service.build_context(body.session_id, body.message)
    return StreamingResponse(
        _sse_frames(chat_service, context),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )

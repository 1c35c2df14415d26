from shared.models.chat import Source
from shared.models.document import CamelModel


class UploadResponse(CamelModel):
    success: bool = True
    session_id: str
    collection_name: str
    message: str


class ChatResponse(CamelModel):
    success: bool = True
    response: str
    sources: list[Source]


class CleanupResponse(CamelModel):
    success: bool = True
    deleted_collections: list[str]
    warnings: list[str]
    message: str


class HealthResponse(CamelModel):
    status: str
    sessions: int


class ErrorResponse(CamelModel):
    success: bool = False
    error: str

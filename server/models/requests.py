from pydantic import Field

from shared.models.document import CamelModel


class ChatRequest(CamelModel):
    session_id: str
    message: str = Field(min_length=1)
    stream: bool = True


class CleanupRequest(CamelModel):
    session_id: str

"""Pydantic models for chat answers and streamed chat events."""

from typing import Literal

from shared.models.document import CamelModel, DocumentChunk


class Source(CamelModel):
    """Citation record returned alongside an answer.

    text is a display projection of the chunk, truncated for citation; the
    prompt always carries the full chunk text.
    """

    file_name: str
    chunk_index: int
    text: str


class ChatContext(CamelModel):
    """Everything generation needs, computed once per chat call.

    Attributes:
        session_id: The session the question was asked in.
        prompt:     The full grounding prompt.
        chunks:     The retrieved chunks the prompt was built from.
        sources:    Citation records, one per chunk, in retrieval order.
    """

    session_id: str
    prompt: str
    chunks: list[DocumentChunk]
    sources: list[Source]


class ChatResult(CamelModel):
    response: str
    sources: list[Source]


class ChatStreamEvent(CamelModel):
    """One item of a streamed answer.

    type "chunk" carries a token and the sources of the call, "complete"
    marks the natural end of the answer, "error" marks a truncated answer.
    """

    type: Literal["chunk", "complete", "error"]
    response: str | None = None
    sources: list[Source] | None = None
    error: str | None = None

"""VectorPoint model: one embedded chunk as stored in the vector store."""

import uuid

from pydantic import BaseModel, ConfigDict, Field


class VectorPayload(BaseModel):
    """Metadata stored alongside each vector chunk.

    Denormalised so search hits are self-describing without a second lookup.
    Stored under the camelCase keys fileName / chunkIndex.

    Attributes:
        text:        Full text of the chunk.
        file_name:   Original uploaded file name (display only).
        chunk_index: Zero-based position of this chunk within the document.
    """

    model_config = ConfigDict(populate_by_name=True)

    text: str
    file_name: str = Field(alias="fileName")
    chunk_index: int = Field(alias="chunkIndex")


class VectorPoint(BaseModel):
    """A point to upsert: random 128-bit id, embedding vector and payload.

    Attributes:
        id:      UUID4 string, unique for the lifetime of the process and beyond.
        vector:  The embedding vector. Its length must match the collection's vector size.
        payload: The chunk metadata.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    vector: list[float]
    payload: VectorPayload

    def to_request_dict(self) -> dict:
        return {
            "id": self.id,
            "vector": self.vector,
            "payload": self.payload.model_dump(by_alias=True),
        }

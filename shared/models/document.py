"""Pydantic models for ingested documents.

Hierarchy:
  CollectionReference : binds one ingested document to one vector-store collection.
  DocumentChunk       : a chunk of document text with provenance, as returned by retrieval.
  IngestionResult     : what an upload hands back to the caller.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialised with camelCase keys on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CollectionReference(CamelModel):
    """One ingested document and the collection holding its chunks.

    Attributes:
        file_name:       Original uploaded file name, display only.
        collection_name: Vector-store collection name, unique per ingestion.
    """

    file_name: str
    collection_name: str


class DocumentChunk(CamelModel):
    """A retrieved chunk with provenance back to its document.

    Attributes:
        text:            Full chunk text.
        file_name:       Source document file name.
        chunk_index:     Zero-based position within the document.
        collection_name: Collection the chunk was retrieved from.
        score:           Similarity score reported by the vector store.
    """

    text: str
    file_name: str
    chunk_index: int
    collection_name: str
    score: float = 0.0


class IngestionResult(CamelModel):
    session_id: str
    collection_name: str
    chunk_count: int = 0

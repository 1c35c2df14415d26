"""Error taxonomy for the document chat pipeline.

Every error raised by the core derives from DocuRAGError so the transport
layer can map the whole family to HTTP responses in one place.
"""


class DocuRAGError(Exception):
    """Base class for all document chat errors."""


class InvalidConfigError(DocuRAGError):
    """Raised when a configuration value is invalid (e.g. chunk_size <= chunk_overlap)."""


class ExtractionError(DocuRAGError):
    """Raised when text cannot be extracted from an uploaded document."""


class EmbeddingServiceError(DocuRAGError):
    """Raised on transport failure, non-success status or malformed body from the embedding endpoint."""


class GenerationServiceError(DocuRAGError):
    """Raised on transport failure, non-success status or malformed body from the generation endpoint."""


class VectorStoreError(DocuRAGError):
    """Raised when a create/upsert/search/delete call against the vector store fails."""


class CollectionNotFoundError(VectorStoreError):
    """Raised when a collection addressed by name does not exist in the vector store."""

    def __init__(self, collection_name: str):
        super().__init__(f"Collection '{collection_name}' does not exist.")
        self.collection_name = collection_name


class SessionNotFoundError(DocuRAGError):
    """Raised when a session id is not known to the registry."""

    def __init__(self, session_id: str):
        super().__init__(f"Session '{session_id}' not found.")
        self.session_id = session_id


class NoDocumentsError(DocuRAGError):
    """Raised when a session exists but owns no collections."""

    def __init__(self, session_id: str):
        super().__init__(f"No documents found in session '{session_id}'.")
        self.session_id = session_id

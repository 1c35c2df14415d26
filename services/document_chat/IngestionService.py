"""Ingestion service.

Extracts the text of an uploaded PDF, creates a fresh collection for it,
splits the text into chunks, embeds every chunk and upserts the resulting
points in one batch. Only a fully ingested document is registered with a
session; any failure after the collection was created deletes it again.
"""

import asyncio
import re
import time
import uuid

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.VectorPoint import VectorPayload, VectorPoint
from shared.exceptions.errors import DocuRAGError, EmbeddingServiceError, ExtractionError
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import CollectionReference, IngestionResult
from services.document_chat.CleanupService import CleanupService
from services.document_chat.PdfTextExtractor import PdfTextExtractor
from services.document_chat.SessionRegistry import SessionRegistry
from services.document_chat.TextSplitter import TextSplitter

SESSION_MODES = ["accumulate", "replace"]
_MAX_DOC_NAME_LEN = 200  # qdrant caps collection names at 255 characters


def build_collection_name(file_name: str, timestamp_ms: int | None = None) -> str:
    """Derive a collection name from a file name.

    A trailing ".pdf" is stripped and every character outside [A-Za-z0-9] is
    replaced by "_". The millisecond timestamp is followed by a random suffix
    so identically named uploads within the same millisecond do not collide.

    Args:
        file_name (str): The uploaded file name.
        timestamp_ms (int | None): Ingestion time in milliseconds, defaults to now.

    Returns:
        str: e.g. "annual_report_2024_1718000000000_3fa85f64"
    """
    doc_name = re.sub(r"\.pdf$", "", file_name, flags=re.IGNORECASE)
    doc_name = re.sub(r"[^A-Za-z0-9]", "_", doc_name)[:_MAX_DOC_NAME_LEN] or "document"
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{doc_name}_{timestamp_ms}_{uuid.uuid4().hex[:8]}"


class IngestionService:
    def __init__(
        self,
        helper_config: HelperConfig,
        registry: SessionRegistry,
        embed_client: EmbedClientInterface,
        rag_client: RAGClientInterface,
        cleanup_service: CleanupService,
        text_extractor: PdfTextExtractor | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._registry = registry
        self._embed_client = embed_client
        self._rag_client = rag_client
        self._cleanup_service = cleanup_service
        self._extractor = text_extractor or PdfTextExtractor(helper_config)
        self._splitter = TextSplitter(
            chunk_size=helper_config.get_int_val("CHUNK_SIZE", default=1000),
            chunk_overlap=helper_config.get_int_val("CHUNK_OVERLAP", default=200),
            snap_to_boundaries=helper_config.get_bool_val("CHUNK_SNAP_TO_BOUNDARIES", default=True),
        )
        self.session_mode = helper_config.get_choice_val("SESSION_MODE", SESSION_MODES, default="accumulate")

    ##########################################
    ################ CORE ####################
    ##########################################

    async def ingest(self, pdf_bytes: bytes, file_name: str, session_id: str | None = None) -> IngestionResult:
        """Ingest one PDF into a new collection and register it with a session.

        Args:
            pdf_bytes (bytes): The raw PDF file.
            file_name (str): The original file name.
            session_id (str | None): Existing session to add the document to.
                A new session is created if absent or unknown.

        Returns:
            IngestionResult: The owning session id and the new collection name.

        Raises:
            ExtractionError: If the PDF cannot be read or contains no text.
            EmbeddingServiceError: If any chunk cannot be embedded.
            VectorStoreError: If the collection cannot be created or filled.
        """
        self.logging.info("Ingesting '%s' (%d bytes)...", file_name, len(pdf_bytes))

        text = await self._extractor.extract(pdf_bytes)
        if not text.strip():
            raise ExtractionError(f"No extractable text found in '{file_name}'.")

        collection_name = build_collection_name(file_name)
        vector_size, distance = await self._embed_client.do_fetch_embedding_vector_size()
        await self._rag_client.do_create_collection(collection_name, vector_size, distance)

        try:
            chunk_count = await self._fill_collection(collection_name, file_name, text)
        except (Exception, asyncio.CancelledError):
            await self._rollback(collection_name)
            raise

        ref = CollectionReference(file_name=file_name, collection_name=collection_name)
        if self.session_mode == "replace":
            owner_id, detached = self._registry.replace_collections(session_id, ref)
            if detached:
                result = await self._cleanup_service.delete_collections(detached)
                for warning in result.warnings:
                    self.logging.warning("Replacing documents of session %s: %s", owner_id, warning)
        else:
            owner_id = self._registry.add_collection(session_id, ref)

        self.logging.info(
            "Ingested '%s' into collection '%s' (%d chunks) for session %s.",
            file_name, collection_name, chunk_count, owner_id, color="green",
        )
        return IngestionResult(session_id=owner_id, collection_name=collection_name, chunk_count=chunk_count)

    ##########################################
    ################ STEPS ###################
    ##########################################

    async def _fill_collection(self, collection_name: str, file_name: str, text: str) -> int:
        chunks = self._splitter.split(text)
        self.logging.debug("Split '%s' into %d chunks.", file_name, len(chunks))

        # every chunk is embedded before anything is upserted
        vectors = await self._embed_client.do_embed_many(chunks)
        if len(vectors) != len(chunks):
            raise EmbeddingServiceError(f"Got {len(vectors)} embeddings for {len(chunks)} chunks.")

        points = [
            VectorPoint(
                vector=vector,
                payload=VectorPayload(text=chunk, file_name=file_name, chunk_index=chunk_index),
            )
            for chunk_index, (chunk, vector) in enumerate(zip(chunks, vectors))
        ]
        await self._rag_client.do_upsert_points(collection_name, points)
        return len(points)

    async def _rollback(self, collection_name: str) -> None:
        try:
            await self._rag_client.do_delete_collection(collection_name)
            self.logging.info("Rolled back collection '%s' after failed ingestion.", collection_name)
        except DocuRAGError as exc:
            self.logging.warning("Rollback of collection '%s' failed, it is left orphaned: %s", collection_name, exc)

import asyncio

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.exceptions.errors import NoDocumentsError
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import CollectionReference, DocumentChunk
from services.document_chat.SessionRegistry import SessionRegistry


class RetrievalService:
    """Finds the chunks most relevant to a query across all documents of a session."""

    def __init__(
        self,
        helper_config: HelperConfig,
        registry: SessionRegistry,
        embed_client: EmbedClientInterface,
        rag_client: RAGClientInterface,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._registry = registry
        self._embed_client = embed_client
        self._rag_client = rag_client
        self.search_limit = helper_config.get_int_val("SEARCH_LIMIT", default=3, minimum=1)

    ##########################################
    ################ CORE ####################
    ##########################################

    async def retrieve(self, session_id: str, query: str) -> list[DocumentChunk]:
        """Embed the query once and search every collection of the session.

        Results are concatenated per collection in registration order; each
        collection keeps its own ranking and contributes at most search_limit
        chunks. There is no re-ranking across collections.

        Args:
            session_id (str): The session to search in.
            query (str): The user question.

        Returns:
            list[DocumentChunk]: Retrieved chunks with provenance.

        Raises:
            SessionNotFoundError: If the session id is unknown.
            NoDocumentsError: If the session has no collections.
            EmbeddingServiceError: If the query cannot be embedded.
            VectorStoreError: If a search fails.
        """
        session = self._registry.require(session_id)
        # snapshot, the session may change while we await
        collections = list(session.collections)
        if not collections:
            raise NoDocumentsError(session_id)
        self._registry.touch(session_id)

        query_vector = await self._embed_client.do_embed(query)

        if len(collections) == 1:
            results = [await self._search(collections[0], query_vector)]
        else:
            results = await self._search_all(collections, query_vector)

        chunks = [chunk for result in results for chunk in result]
        self.logging.info(
            "Retrieved %d chunk(s) from %d collection(s) for session %s.",
            len(chunks), len(collections), session_id,
        )
        return chunks

    async def _search_all(self, collections: list[CollectionReference], query_vector: list[float]) -> list[list[DocumentChunk]]:
        # a failed search cancels the outstanding ones before the error propagates
        tasks = [asyncio.ensure_future(self._search(ref, query_vector)) for ref in collections]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def _search(self, ref: CollectionReference, query_vector: list[float]) -> list[DocumentChunk]:
        hits = await self._rag_client.do_search(ref.collection_name, query_vector, self.search_limit)
        return [
            DocumentChunk(
                text=hit.payload.text,
                file_name=hit.payload.file_name,
                chunk_index=hit.payload.chunk_index,
                collection_name=ref.collection_name,
                score=hit.score,
            )
            for hit in hits[: self.search_limit]
        ]

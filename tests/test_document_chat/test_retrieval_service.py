"""Tests for session-scoped retrieval."""

import asyncio

import pytest

from shared.clients.rag.models.VectorPoint import VectorPayload, VectorPoint
from shared.exceptions.errors import InvalidConfigError, NoDocumentsError, SessionNotFoundError, VectorStoreError
from shared.models.document import CollectionReference
from services.document_chat.RetrievalService import RetrievalService


async def seed(registry, vector_store, session_id, file_name, texts):
    collection_name = f"{file_name.replace('.', '_')}_coll"
    await vector_store.do_create_collection(collection_name, 3)
    await vector_store.do_upsert_points(collection_name, [
        VectorPoint(vector=[1.0, 0.0, 0.0], payload=VectorPayload(text=text, file_name=file_name, chunk_index=i))
        for i, text in enumerate(texts)
    ])
    return registry.add_collection(session_id, CollectionReference(file_name=file_name, collection_name=collection_name))


@pytest.fixture
def service(helper_config, registry, embed_client, vector_store):
    return RetrievalService(helper_config=helper_config, registry=registry, embed_client=embed_client, rag_client=vector_store)


class TestRetrievalService:

    @pytest.mark.asyncio
    async def test_unknown_session_raises(self, service):
        with pytest.raises(SessionNotFoundError):
            await service.retrieve("missing", "question")

    @pytest.mark.asyncio
    async def test_session_without_documents_raises(self, service, registry, embed_client):
        session_id = registry.create()
        with pytest.raises(NoDocumentsError):
            await service.retrieve(session_id, "question")
        embed_client.do_embed.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_single_collection(self, service, registry, vector_store):
        session_id = await seed(registry, vector_store, None, "a.pdf", ["one", "two"])
        chunks = await service.retrieve(session_id, "question")

        assert [chunk.text for chunk in chunks] == ["one", "two"]
        assert chunks[0].collection_name == "a_pdf_coll"
        assert chunks[0].score > chunks[1].score

    @pytest.mark.asyncio
    async def test_collections_concatenated_in_registration_order(self, service, registry, vector_store, embed_client):
        session_id = await seed(registry, vector_store, None, "a.pdf", ["a0", "a1", "a2", "a3"])
        await seed(registry, vector_store, session_id, "b.pdf", ["b0", "b1"])

        chunks = await service.retrieve(session_id, "question")

        # default limit of 3 per collection, no merging across collections
        assert [(chunk.file_name, chunk.text) for chunk in chunks] == [
            ("a.pdf", "a0"), ("a.pdf", "a1"), ("a.pdf", "a2"), ("b.pdf", "b0"), ("b.pdf", "b1"),
        ]
        embed_client.do_embed.assert_awaited_once_with("question")

    @pytest.mark.asyncio
    async def test_search_limit_from_config(self, base_env, helper_config, registry, embed_client, vector_store):
        base_env.setenv("SEARCH_LIMIT", "1")
        service = RetrievalService(helper_config=helper_config, registry=registry, embed_client=embed_client, rag_client=vector_store)
        session_id = await seed(registry, vector_store, None, "a.pdf", ["one", "two"])

        assert [chunk.text for chunk in await service.retrieve(session_id, "q")] == ["one"]

    def test_search_limit_below_one_rejected(self, base_env, helper_config, registry, embed_client, vector_store):
        base_env.setenv("SEARCH_LIMIT", "0")
        with pytest.raises(InvalidConfigError):
            RetrievalService(helper_config=helper_config, registry=registry, embed_client=embed_client, rag_client=vector_store)

    @pytest.mark.asyncio
    async def test_retrieve_marks_session_active(self, service, registry, vector_store):
        session_id = await seed(registry, vector_store, None, "a.pdf", ["one"])
        registry.require(session_id).last_activity -= 1000
        await service.retrieve(session_id, "q")
        assert registry.idle_session_ids(500) == []

    @pytest.mark.asyncio
    async def test_failed_search_cancels_other_collections(self, service, registry, vector_store):
        session_id = await seed(registry, vector_store, None, "bad.pdf", ["x"])
        await seed(registry, vector_store, session_id, "slow.pdf", ["y"])
        finished, cancelled = [], []

        async def do_search(collection_name, query_vector, limit):
            if collection_name == "bad_pdf_coll":
                raise VectorStoreError("Search on collection 'bad_pdf_coll' failed with status 500.")
            try:
                await asyncio.sleep(0.05)
            except asyncio.CancelledError:
                cancelled.append(collection_name)
                raise
            finished.append(collection_name)
            return []

        vector_store.do_search = do_search

        with pytest.raises(VectorStoreError):
            await service.retrieve(session_id, "q")
        assert cancelled == ["slow_pdf_coll"]

        await asyncio.sleep(0.1)
        assert finished == []

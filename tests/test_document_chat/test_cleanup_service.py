"""Tests for session cleanup and the idle session reaper."""

import asyncio

import pytest

from shared.exceptions.errors import SessionNotFoundError
from shared.models.document import CollectionReference
from services.document_chat.SessionReaper import SessionReaper


async def add_document(registry, vector_store, session_id, name):
    await vector_store.do_create_collection(name, 3)
    return registry.add_collection(session_id, CollectionReference(file_name=f"{name}.pdf", collection_name=name))


class TestCleanupService:

    @pytest.mark.asyncio
    async def test_cleanup_deletes_all_collections(self, cleanup_service, registry, vector_store):
        session_id = await add_document(registry, vector_store, None, "a")
        await add_document(registry, vector_store, session_id, "b")

        result = await cleanup_service.cleanup(session_id)

        assert sorted(result.deleted_collections) == ["a", "b"]
        assert result.warnings == []
        assert vector_store.collections == {}
        assert registry.get(session_id) is None

    @pytest.mark.asyncio
    async def test_failed_deletion_becomes_warning(self, cleanup_service, registry, vector_store):
        session_id = await add_document(registry, vector_store, None, "a")
        await add_document(registry, vector_store, session_id, "b")
        vector_store.fail_delete.add("a")

        result = await cleanup_service.cleanup(session_id)

        assert result.deleted_collections == ["b"]
        assert len(result.warnings) == 1
        assert result.warnings[0].startswith("Failed to delete collection 'a'")
        assert registry.get(session_id) is None

    @pytest.mark.asyncio
    async def test_missing_collection_counts_as_deleted(self, cleanup_service, registry, vector_store):
        session_id = await add_document(registry, vector_store, None, "a")
        del vector_store.collections["a"]

        result = await cleanup_service.cleanup(session_id)
        assert result.deleted_collections == ["a"]
        assert result.warnings == []

    @pytest.mark.asyncio
    async def test_cleanup_unknown_session_raises(self, cleanup_service):
        with pytest.raises(SessionNotFoundError):
            await cleanup_service.cleanup("missing")

    @pytest.mark.asyncio
    async def test_cleanup_empty_session(self, cleanup_service, registry):
        session_id = registry.create()
        result = await cleanup_service.cleanup(session_id)
        assert result.deleted_collections == []
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_cleanup_all(self, cleanup_service, registry, vector_store):
        await add_document(registry, vector_store, None, "a")
        await add_document(registry, vector_store, None, "b")

        result = await cleanup_service.cleanup_all()

        assert sorted(result.deleted_collections) == ["a", "b"]
        assert len(registry) == 0


class TestSessionReaper:

    def test_disabled_by_default(self, helper_config, registry, cleanup_service):
        assert not SessionReaper(helper_config, registry, cleanup_service).enabled

    @pytest.mark.asyncio
    async def test_sweep_reaps_only_idle_sessions(self, base_env, helper_config, registry, vector_store, cleanup_service):
        base_env.setenv("SESSION_IDLE_TTL", "60")
        reaper = SessionReaper(helper_config, registry, cleanup_service)
        idle = await add_document(registry, vector_store, None, "idle")
        active = await add_document(registry, vector_store, None, "active")
        registry.require(idle).last_activity -= 120

        assert await reaper.sweep() == [idle]
        assert registry.get(idle) is None
        assert registry.get(active) is not None
        assert list(vector_store.collections) == ["active"]

    @pytest.mark.asyncio
    async def test_start_and_stop(self, base_env, helper_config, registry, cleanup_service):
        base_env.setenv("SESSION_IDLE_TTL", "60")
        base_env.setenv("SESSION_REAP_INTERVAL", "0.01")
        reaper = SessionReaper(helper_config, registry, cleanup_service)
        idle = registry.create()
        registry.require(idle).last_activity -= 120

        await reaper.start()
        for _ in range(100):
            if registry.get(idle) is None:
                break
            await asyncio.sleep(0.01)
        await reaper.stop()

        assert registry.get(idle) is None

    @pytest.mark.asyncio
    async def test_start_does_nothing_when_disabled(self, helper_config, registry, cleanup_service):
        reaper = SessionReaper(helper_config, registry, cleanup_service)
        await reaper.start()
        await reaper.stop()
        assert reaper._task is None

import asyncio

from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.exceptions.errors import CollectionNotFoundError, DocuRAGError
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import CollectionReference
from shared.models.session import CleanupResult
from services.document_chat.SessionRegistry import SessionRegistry


class CleanupService:
    """Deletes sessions and the vector-store collections they own.

    Cleanup is best-effort: a collection that cannot be deleted is reported
    as a warning and left behind as an orphan, it never fails the cleanup.
    """

    def __init__(
        self,
        helper_config: HelperConfig,
        registry: SessionRegistry,
        rag_client: RAGClientInterface,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._registry = registry
        self._rag_client = rag_client

    ##########################################
    ################ CORE ####################
    ##########################################

    async def cleanup(self, session_id: str) -> CleanupResult:
        """Remove a session and delete all of its collections.

        The session entry is removed first, so no request can attach a new
        collection to it while its collections are being deleted.

        Args:
            session_id (str): The session to clean up.

        Returns:
            CleanupResult: Deleted collection names and one warning per failed deletion.

        Raises:
            SessionNotFoundError: If the session id is unknown.
        """
        session = self._registry.remove_session(session_id)
        result = await self.delete_collections(session.collections)
        self.logging.info(
            "Session %s cleaned up: %d collection(s) deleted, %d warning(s).",
            session_id, len(result.deleted_collections), len(result.warnings),
        )
        return result

    async def cleanup_all(self) -> CleanupResult:
        """Clean up every registered session. Used on shutdown."""
        total = CleanupResult()
        for session_id in self._registry.session_ids():
            # a concurrent request may have removed it already
            if self._registry.get(session_id) is None:
                continue
            result = await self.cleanup(session_id)
            total.deleted_collections.extend(result.deleted_collections)
            total.warnings.extend(result.warnings)
        return total

    async def delete_collections(self, refs: list[CollectionReference]) -> CleanupResult:
        """Delete collections concurrently, continuing past individual failures.

        A collection that no longer exists counts as deleted.

        Args:
            refs (list[CollectionReference]): The collections to delete.

        Returns:
            CleanupResult: Deleted collection names and one warning per failed deletion.
        """
        warnings = await asyncio.gather(*[self._delete_one(ref.collection_name) for ref in refs])
        result = CleanupResult()
        for ref, warning in zip(refs, warnings):
            if warning is None:
                result.deleted_collections.append(ref.collection_name)
            else:
                result.warnings.append(warning)
        return result

    async def _delete_one(self, collection_name: str) -> str | None:
        try:
            await self._rag_client.do_delete_collection(collection_name)
        except CollectionNotFoundError:
            self.logging.info("Collection '%s' was already gone.", collection_name)
        except DocuRAGError as exc:
            self.logging.warning("Error deleting collection '%s': %s", collection_name, exc)
            return f"Failed to delete collection '{collection_name}': {exc}"
        return None

"""Pydantic models for chat sessions."""

import time

from pydantic import Field

from shared.models.document import CamelModel, CollectionReference


class Session(CamelModel):
    """A server-side handle grouping the documents of one client interaction.

    Attributes:
        session_id:    Opaque token generated server-side.
        collections:   Owned collections in upload order.
        created_at:    Wall-clock creation time (epoch seconds).
        last_activity: Monotonic timestamp of the last upload or chat, used by the idle reaper.
    """

    session_id: str
    collections: list[CollectionReference] = []
    created_at: float = Field(default_factory=time.time)
    last_activity: float = Field(default_factory=time.monotonic)


class CleanupResult(CamelModel):
    """Outcome of a session cleanup.

    Attributes:
        deleted_collections: Collections that are gone from the vector store
                             (including ones that were already missing).
        warnings:            One message per collection whose deletion failed.
    """

    deleted_collections: list[str] = []
    warnings: list[str] = []

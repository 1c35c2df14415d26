"""In-memory session registry.

Maps session ids to the collections they own. There is one registry per
serving process; it is created and torn down with the application lifespan
and handed to the services that need it.

Every mutating method runs to completion without awaiting, so on the event
loop no two mutations can interleave. Callers that read a session, await,
and then act on what they read must expect the session to be gone by then.
"""

import time
import uuid

from shared.exceptions.errors import SessionNotFoundError
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import CollectionReference
from shared.models.session import Session


class SessionRegistry:
    def __init__(self, helper_config: HelperConfig) -> None:
        self.logging = helper_config.get_logger()
        self._sessions: dict[str, Session] = {}

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    async def init(self) -> None:
        self._sessions.clear()
        self.logging.info("Session registry initialised.")

    async def shutdown(self) -> None:
        """Drop all sessions. Vector-store collections must be cleaned up before."""
        if self._sessions:
            self.logging.warning("Session registry shut down with %d session(s) still registered.", len(self._sessions))
        self._sessions.clear()

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get(self, session_id: str | None) -> Session | None:
        if not session_id:
            return None
        return self._sessions.get(session_id)

    def require(self, session_id: str | None) -> Session:
        """Return the session or raise SessionNotFoundError."""
        session = self.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id or "")
        return session

    def session_ids(self) -> list[str]:
        return list(self._sessions)

    def __len__(self) -> int:
        return len(self._sessions)

    def idle_session_ids(self, idle_seconds: float) -> list[str]:
        """Return the ids of sessions without activity for more than idle_seconds."""
        now = time.monotonic()
        return [
            session_id
            for session_id, session in self._sessions.items()
            if now - session.last_activity > idle_seconds
        ]

    ##########################################
    ############### MUTATIONS ################
    ##########################################

    def create(self) -> str:
        """Create an empty session with a fresh random id and return the id."""
        session_id = str(uuid.uuid4())
        self._sessions[session_id] = Session(session_id=session_id)
        self.logging.debug("Session %s created.", session_id)
        return session_id

    def add_collection(self, session_id: str | None, ref: CollectionReference) -> str:
        """Append a collection to a session, creating a new session if the id is absent or unknown.

        Session ids are always generated here; an unknown id from a caller is
        never adopted.

        Returns:
            str: The id of the session that now owns the collection.
        """
        session = self.get(session_id)
        if session is None:
            session_id = self.create()
            session = self._sessions[session_id]
        session.collections.append(ref)
        session.last_activity = time.monotonic()
        return session.session_id

    def replace_collections(self, session_id: str | None, ref: CollectionReference) -> tuple[str, list[CollectionReference]]:
        """Make ref the only collection of a session (single-collection mode).

        Returns:
            tuple[str, list[CollectionReference]]: The session id and the
            collections that were detached and now need deleting.
        """
        session = self.get(session_id)
        if session is None:
            return self.add_collection(None, ref), []
        detached = list(session.collections)
        session.collections = [ref]
        session.last_activity = time.monotonic()
        return session.session_id, detached

    def touch(self, session_id: str) -> None:
        session = self.get(session_id)
        if session is not None:
            session.last_activity = time.monotonic()

    def remove_session(self, session_id: str) -> Session:
        """Remove a session and return it, with the collections it owned.

        Raises:
            SessionNotFoundError: If the session id is unknown.
        """
        session = self._sessions.pop(session_id, None)
        if session is None:
            raise SessionNotFoundError(session_id)
        self.logging.debug("Session %s removed.", session_id)
        return session

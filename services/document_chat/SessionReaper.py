import asyncio
import contextlib

from shared.exceptions.errors import SessionNotFoundError
from shared.helper.HelperConfig import HelperConfig
from services.document_chat.CleanupService import CleanupService
from services.document_chat.SessionRegistry import SessionRegistry


class SessionReaper:
    """Timer-driven sweep that cleans up sessions idle for longer than SESSION_IDLE_TTL.

    Disabled when SESSION_IDLE_TTL is 0 (the default).
    """

    def __init__(
        self,
        helper_config: HelperConfig,
        registry: SessionRegistry,
        cleanup_service: CleanupService,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._registry = registry
        self._cleanup_service = cleanup_service
        self.idle_ttl = float(helper_config.get_number_val("SESSION_IDLE_TTL", default=0))
        self.interval = float(helper_config.get_number_val("SESSION_REAP_INTERVAL", default=60))
        self._task: asyncio.Task | None = None

    @property
    def enabled(self) -> bool:
        return self.idle_ttl > 0

    async def start(self) -> None:
        if not self.enabled:
            self.logging.info("Idle session reaper disabled (SESSION_IDLE_TTL=0).")
            return
        self._task = asyncio.create_task(self._run())
        self.logging.info("Idle session reaper started (ttl=%ss, interval=%ss).", self.idle_ttl, self.interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def sweep(self) -> list[str]:
        """Clean up every session idle for longer than idle_ttl.

        Returns:
            list[str]: The ids of the sessions that were cleaned up.
        """
        reaped: list[str] = []
        for session_id in self._registry.idle_session_ids(self.idle_ttl):
            try:
                await self._cleanup_service.cleanup(session_id)
            except SessionNotFoundError:
                # cleaned up by a request in the meantime
                continue
            reaped.append(session_id)
        if reaped:
            self.logging.info("Reaped %d idle session(s).", len(reaped), color="yellow")
        return reaped

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.sweep()
            except Exception:
                self.logging.exception("Idle session sweep failed, retrying next interval.")

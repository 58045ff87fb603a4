"""Background notification sessions, one per signed-in user."""

from typing import Dict, Optional

from ..config import get_settings
from ..logging_config import get_logger
from .medications import MedicationRepository
from .notifications.engine import NotificationEngine
from .notifications.session import NotificationSession
from .notifications.timers import AsyncioTimerRegistry
from .preferences import UserPreferenceStore

logger = get_logger(__name__)


class BackgroundServiceManager:
    """Starts, looks up and stops notification sessions."""

    def __init__(
        self,
        repository: Optional[MedicationRepository] = None,
        preference_store: Optional[UserPreferenceStore] = None,
    ):
        self.settings = get_settings()
        self._repository = repository
        self._preference_store = preference_store
        self.sessions: Dict[str, NotificationSession] = {}
        self._running = False

    @property
    def repository(self) -> MedicationRepository:
        if self._repository is None:
            self._repository = MedicationRepository()
        return self._repository

    @property
    def preference_store(self) -> UserPreferenceStore:
        if self._preference_store is None:
            self._preference_store = UserPreferenceStore()
        return self._preference_store

    async def start_services(self) -> None:
        """Start the session for the default user."""

        if self._running:
            logger.warning("Background services already running")
            return

        logger.info("Starting background services...")
        self._running = True
        await self.get_session(self.settings.default_user_id)
        logger.info("All background services started successfully")

    async def get_session(self, user_id: str) -> NotificationSession:
        """Return the running session for ``user_id``, starting one if needed."""
        session = self.sessions.get(user_id)
        if session is None:
            session = NotificationSession(
                user_id,
                self.repository,
                self.preference_store,
                poll_interval=self.settings.poll_interval_seconds,
                engine=NotificationEngine(
                    AsyncioTimerRegistry(),
                    refill_settle_seconds=self.settings.refill_settle_seconds,
                ),
            )
            self.sessions[user_id] = session

        if not session.running:
            await session.start()
        return session

    async def stop_session(self, user_id: str) -> None:
        """Stop a user's session, e.g. after sign-out."""
        session = self.sessions.pop(user_id, None)
        if session:
            await session.stop()

    async def stop_services(self) -> None:
        """Stop all notification sessions."""

        if not self._running and not self.sessions:
            return

        logger.info("Stopping background services...")

        for user_id in list(self.sessions):
            try:
                await self.stop_session(user_id)
            except Exception as e:
                logger.error(f"Error stopping session for {user_id}: {e}")

        self._running = False
        logger.info("Background services stopped")

    def is_running(self) -> bool:
        return self._running


# Global background service manager
_background_manager = BackgroundServiceManager()


def get_background_manager() -> BackgroundServiceManager:
    """Get the global background service manager."""
    return _background_manager

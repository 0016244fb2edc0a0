import logging
import uuid
from datetime import datetime

from monkeygen.config import Settings, settings
from monkeygen.errors import NotFoundError
from monkeygen.models.schemas import BaseImage
from monkeygen.services.openai_images import openai_service
from monkeygen.services.orchestrator import GenerationOrchestrator, StudioContext
from monkeygen.services.studio_client import StudioAPIClient

logger = logging.getLogger(__name__)


class StudioSession:
    """One user's studio: a base image and the orchestrator working on it."""

    def __init__(self, orchestrator: GenerationOrchestrator):
        self.id = str(uuid.uuid4())
        self.created_at = datetime.utcnow()
        self.orchestrator = orchestrator

    @property
    def context(self) -> StudioContext:
        return self.orchestrator.context


class StudioManager:
    """In-memory registry of studio sessions. Nothing survives a restart."""

    def __init__(self, config: Settings = settings, analyzer=None, generator=None):
        self.settings = config
        self.sessions: dict[str, StudioSession] = {}
        self._analyzer = analyzer
        self._generator = generator

    def _collaborators(self):
        if self._analyzer is not None and self._generator is not None:
            return self._analyzer, self._generator
        if self.settings.generation_api_url:
            client = StudioAPIClient(
                self.settings.generation_api_url,
                analyze_timeout=self.settings.analyze_timeout,
                generate_timeout=self.settings.generate_timeout,
            )
            return client, client
        return openai_service, openai_service

    def create(self, image: BaseImage) -> StudioSession:
        analyzer, generator = self._collaborators()
        session = StudioSession(GenerationOrchestrator(analyzer, generator))
        session.orchestrator.load_image(image)
        self.sessions[session.id] = session
        logger.info(f"Created studio session {session.id}")
        return session

    def get(self, session_id: str) -> StudioSession:
        session = self.sessions.get(session_id)
        if session is None:
            raise NotFoundError("Session not found")
        return session

    def delete(self, session_id: str) -> None:
        session = self.get(session_id)
        session.orchestrator.stop()
        del self.sessions[session_id]
        logger.info(f"Deleted studio session {session_id}")


studio_manager = StudioManager()


def get_studio_manager() -> StudioManager:
    return studio_manager

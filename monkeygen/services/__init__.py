from monkeygen.services.traits import TraitPoolRegistry
from monkeygen.services.prompt_composer import PromptComposer
from monkeygen.services.style_cache import StyleCache
from monkeygen.services.gallery import ResultGallery
from monkeygen.services.orchestrator import GenerationOrchestrator, StudioContext
from monkeygen.services.openai_images import OpenAIImageService
from monkeygen.services.studio_client import StudioAPIClient
from monkeygen.services.storage import StorageService
from monkeygen.services.studio import StudioManager

__all__ = [
    "TraitPoolRegistry",
    "PromptComposer",
    "StyleCache",
    "ResultGallery",
    "GenerationOrchestrator",
    "StudioContext",
    "OpenAIImageService",
    "StudioAPIClient",
    "StorageService",
    "StudioManager",
]

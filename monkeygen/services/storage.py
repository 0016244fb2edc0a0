import base64
import logging
import shutil
from pathlib import Path

import aiofiles
import httpx

from monkeygen.config import Settings, settings
from monkeygen.errors import UpstreamError
from monkeygen.models.schemas import GeneratedImage

logger = logging.getLogger(__name__)


class StorageService:
    def __init__(
        self,
        config: Settings = settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.settings = config
        self._transport = transport

    @property
    def outputs_dir(self) -> Path:
        return self.settings.ensure_outputs_dir()

    def get_session_dir(self, session_id: str) -> Path:
        session_dir = self.outputs_dir / session_id
        session_dir.mkdir(parents=True, exist_ok=True)
        return session_dir

    def get_result_filename(self, index: int) -> str:
        """Download name for a gallery item."""
        return f"nft-{index:03d}.png"

    async def image_bytes(self, image: GeneratedImage) -> bytes:
        """Raw bytes of a generated image, fetching it if only a URL is known."""
        if image.b64:
            return base64.b64decode(image.b64)

        async with httpx.AsyncClient(timeout=60.0, transport=self._transport) as client:
            try:
                response = await client.get(image.url)
                response.raise_for_status()
            except httpx.HTTPError as e:
                logger.error(f"Failed to fetch generated image {image.url}: {e}")
                raise UpstreamError(f"Could not download image: {e}")
        return response.content

    async def save_image(self, session_id: str, image: GeneratedImage, filename: str) -> Path:
        """Write a generated image to the session directory."""
        file_path = self.get_session_dir(session_id) / filename
        image_data = await self.image_bytes(image)

        async with aiofiles.open(file_path, "wb") as f:
            await f.write(image_data)

        logger.info(f"Saved {file_path} ({len(image_data)} bytes)")
        return file_path

    def delete_session(self, session_id: str) -> bool:
        """Delete all exported files for a session."""
        session_dir = self.outputs_dir / session_id
        if session_dir.exists():
            shutil.rmtree(session_dir)
            return True
        return False


storage_service = StorageService()


def get_storage_service() -> StorageService:
    return storage_service

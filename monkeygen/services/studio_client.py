import httpx
import logging

from pydantic import ValidationError

from monkeygen.errors import ImageGenerationError, StyleAnalysisError
from monkeygen.models.schemas import BaseImage, GeneratedImage

logger = logging.getLogger(__name__)


def _error_body(response: httpx.Response) -> tuple[str | None, str | None]:
    """(message, code) from a boundary error body, tolerating non-JSON."""
    try:
        body = response.json()
    except ValueError:
        return (response.text or None), None
    if not isinstance(body, dict):
        return None, None
    return body.get("error"), body.get("code")


class StudioAPIClient:
    """
    Calls a MonkeyGen deployment's /api/analyze and /api/generate.

    Implements the same collaborator methods as OpenAIImageService, so an
    orchestrator can run against a remote deployment. Any non-2xx answer
    becomes StyleAnalysisError / ImageGenerationError.
    """

    def __init__(
        self,
        base_url: str,
        transport: httpx.AsyncBaseTransport | None = None,
        analyze_timeout: float = 30.0,
        generate_timeout: float = 60.0,
    ):
        self.base_url = base_url.rstrip("/")
        self._transport = transport
        self.analyze_timeout = analyze_timeout
        self.generate_timeout = generate_timeout

    async def _post(self, path: str, payload: dict, timeout: float) -> httpx.Response:
        async with httpx.AsyncClient(
            base_url=self.base_url, timeout=timeout, transport=self._transport
        ) as client:
            return await client.post(path, json=payload)

    async def analyze_style(self, image: BaseImage) -> str:
        try:
            response = await self._post(
                "/api/analyze",
                {"imageBase64": image.b64, "mimeType": image.media_type},
                self.analyze_timeout,
            )
        except httpx.HTTPError as e:
            logger.error(f"[studio-client] Analyze request failed: {e}")
            raise StyleAnalysisError(f"Cannot reach {self.base_url}: {e}")

        if not response.is_success:
            message, code = _error_body(response)
            raise StyleAnalysisError(message, response.status_code, reason=code)

        try:
            style = response.json().get("styleDescription")
        except (ValueError, AttributeError):
            style = None
        if not style:
            raise StyleAnalysisError("Style analysis returned no description")
        return style

    async def generate_variation(self, image: BaseImage, prompt: str) -> GeneratedImage:
        try:
            response = await self._post(
                "/api/generate",
                {"imageBase64": image.b64, "mimeType": image.media_type, "prompt": prompt},
                self.generate_timeout,
            )
        except httpx.HTTPError as e:
            logger.error(f"[studio-client] Generate request failed: {e}")
            raise ImageGenerationError(f"Cannot reach {self.base_url}: {e}")

        if not response.is_success:
            message, code = _error_body(response)
            raise ImageGenerationError(message, response.status_code, reason=code)

        try:
            body = response.json()
            return GeneratedImage(b64=body.get("b64"), url=body.get("url"))
        except (ValueError, AttributeError, ValidationError):
            raise ImageGenerationError("No image in response", response.status_code, reason="no_image")

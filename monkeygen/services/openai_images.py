import httpx
import logging

from monkeygen.config import Settings, settings
from monkeygen.errors import (
    ContentPolicyError,
    ImageGenerationError,
    NoImageReturnedError,
    RateLimitedError,
    ServiceNotConfiguredError,
    StudioError,
    StyleAnalysisError,
    UpstreamAuthError,
    UpstreamError,
)
from monkeygen.models.schemas import BaseImage, GeneratedImage

logger = logging.getLogger(__name__)

STYLE_ANALYSIS_PROMPT = (
    "Describe this cartoon character art style in 3 sentences. Focus on: line thickness, "
    "coloring technique (flat/gradient/cell shading), character proportions, overall aesthetic, "
    "and any distinctive visual features. Be specific and technical so an AI image generator "
    "can replicate it."
)

FALLBACK_STYLE = "flat vector cartoon style with clean black outlines, cell shading, and cute proportions"

# Upstream status -> error raised for an image edit
EDIT_ERRORS: dict[int, type[UpstreamError]] = {
    401: UpstreamAuthError,
    429: RateLimitedError,
    400: ContentPolicyError,
}


def _upstream_message(response: httpx.Response) -> str | None:
    """Pull the human readable message out of an OpenAI error body."""
    try:
        body = response.json()
    except ValueError:
        return response.text or None

    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        return error.get("message")
    if isinstance(error, str):
        return error
    return None


class OpenAIImageService:
    """
    Stateless adapter to the OpenAI API.

    ``describe_style`` and ``edit_image`` raise the upstream error taxonomy
    and back the two HTTP boundaries. ``analyze_style`` and
    ``generate_variation`` wrap them for the orchestrator.
    """

    def __init__(
        self,
        config: Settings = settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.settings = config
        self._transport = transport

    @property
    def base_url(self) -> str:
        return self.settings.openai_base_url.rstrip("/")

    @property
    def is_configured(self) -> bool:
        return bool(self.settings.openai_api_key)

    def _require_key(self) -> str:
        if not self.settings.openai_api_key:
            raise ServiceNotConfiguredError()
        return self.settings.openai_api_key

    def _client(self, api_key: str, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=timeout,
            transport=self._transport,
        )

    async def _post(self, api_key: str, timeout: float, path: str, **kwargs) -> httpx.Response:
        async with self._client(api_key, timeout) as client:
            try:
                return await client.post(path, **kwargs)
            except httpx.TimeoutException as e:
                logger.error(f"[openai] {path} timed out after {timeout}s: {e}")
                raise UpstreamError(f"OpenAI request timed out after {int(timeout)}s")
            except httpx.ConnectError as e:
                logger.error(f"[openai] Cannot connect to {self.base_url}: {e}")
                raise UpstreamError(f"Cannot connect to OpenAI at {self.base_url}")
            except httpx.HTTPError as e:
                logger.error(f"[openai] {path} failed: {type(e).__name__}: {e}")
                raise UpstreamError(str(e) or None)

    async def describe_style(self, image_data: bytes | str, mime_type: str | None = None) -> str:
        """
        Ask the vision model for a short, technical description of the
        character's art style.

        Args:
            image_data: Raw image bytes, or base64 without data URL prefix
            mime_type: Declared media type, defaults to image/png

        Returns:
            A few sentences of style description
        """
        api_key = self._require_key()
        image_b64 = image_data if isinstance(image_data, str) else BaseImage(data=image_data).b64

        payload = {
            "model": self.settings.vision_model,
            "max_tokens": self.settings.analyze_max_tokens,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "image_url",
                            "image_url": {
                                "url": f"data:{mime_type or 'image/png'};base64,{image_b64}",
                                "detail": "low",
                            },
                        },
                        {"type": "text", "text": STYLE_ANALYSIS_PROMPT},
                    ],
                }
            ],
        }

        logger.info(f"[openai] Analyzing style with {self.settings.vision_model}")
        response = await self._post(
            api_key, self.settings.analyze_timeout, "/chat/completions", json=payload
        )

        if response.status_code != 200:
            message = _upstream_message(response)
            logger.error(f"[openai] Analyze HTTP {response.status_code}: {message}")
            raise UpstreamError(message or "Analysis failed")

        try:
            choices = response.json().get("choices") or []
            content = (choices[0].get("message") or {}).get("content") if choices else None
        except (ValueError, AttributeError):
            raise UpstreamError("Analysis failed: malformed response")

        style = (content or "").strip() or FALLBACK_STYLE
        logger.info(f"[openai] Style description received ({len(style)} chars)")
        return style

    async def edit_image(
        self,
        image_data: bytes,
        mime_type: str | None,
        prompt: str,
    ) -> GeneratedImage:
        """Run one image edit of the base image with the given prompt."""
        api_key = self._require_key()

        logger.info(f"[openai] Editing image with {self.settings.image_model}: {prompt[:80]}...")
        response = await self._post(
            api_key,
            self.settings.generate_timeout,
            "/images/edits",
            data={
                "model": self.settings.image_model,
                "prompt": prompt,
                "n": "1",
                "size": self.settings.image_size,
            },
            files={"image": ("base.png", image_data, mime_type or "image/png")},
        )

        if response.status_code != 200:
            message = _upstream_message(response)
            logger.error(f"[openai] Generate HTTP {response.status_code}: {message}")
            error_cls = EDIT_ERRORS.get(response.status_code)
            if error_cls is not None:
                raise error_cls()
            raise UpstreamError(message or "Generation failed")

        try:
            data = response.json().get("data") or []
        except (ValueError, AttributeError):
            raise NoImageReturnedError()

        first = data[0] if data and isinstance(data[0], dict) else {}
        if first.get("b64_json"):
            return GeneratedImage(b64=first["b64_json"])
        if first.get("url"):
            return GeneratedImage(url=first["url"])

        logger.error("[openai] Edit response contained no image")
        raise NoImageReturnedError()

    # Orchestrator collaborators

    async def analyze_style(self, image: BaseImage) -> str:
        try:
            return await self.describe_style(image.data, image.media_type)
        except StudioError as e:
            raise StyleAnalysisError(e.message, e.status_code, reason=e.code) from e

    async def generate_variation(self, image: BaseImage, prompt: str) -> GeneratedImage:
        try:
            return await self.edit_image(image.data, image.media_type, prompt)
        except StudioError as e:
            raise ImageGenerationError(e.message, e.status_code, reason=e.code) from e

    async def health_check(self) -> bool:
        """Check the key is set and accepted by the API."""
        if not self.is_configured:
            return False
        try:
            async with self._client(self.settings.openai_api_key, 10.0) as client:
                response = await client.get("/models")
                return response.status_code == 200
        except Exception as e:
            logger.warning(f"OpenAI health check failed: {e}")
            return False


openai_service = OpenAIImageService()


def get_openai_service() -> OpenAIImageService:
    return openai_service

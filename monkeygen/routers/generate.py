import logging
from fastapi import APIRouter, Depends

from monkeygen.errors import InvalidInputError, ServiceNotConfiguredError, StudioError, UpstreamError
from monkeygen.models.schemas import ErrorResponse, GenerateRequest, GenerateResponse
from monkeygen.services.images import decode_b64
from monkeygen.services.openai_images import OpenAIImageService, get_openai_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/generate", tags=["generation"])


@router.post(
    "",
    response_model=GenerateResponse,
    response_model_exclude_none=True,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def generate_variation(
    data: GenerateRequest,
    service: OpenAIImageService = Depends(get_openai_service),
):
    """
    Edit the base image with one prompt.

    Answers ``{"b64": ...}`` or ``{"url": ...}``. Provider failures keep a
    distinct status (401 bad key, 429 rate limit, 400 content policy) so
    the caller can explain them; they are all plain failures otherwise.
    """
    if not service.is_configured:
        raise ServiceNotConfiguredError()

    if not data.image_base64 or not data.prompt:
        raise InvalidInputError("Missing imageBase64 or prompt")

    image_data = decode_b64(data.image_base64)

    try:
        image = await service.edit_image(image_data, data.mime_type, data.prompt)
    except StudioError:
        raise
    except Exception as e:
        logger.exception("Generate error")
        raise UpstreamError(str(e) or "Generation failed")

    return GenerateResponse(b64=image.b64, url=image.url)

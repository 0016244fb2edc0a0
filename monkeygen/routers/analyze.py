import logging
from fastapi import APIRouter, Depends

from monkeygen.errors import InvalidInputError, ServiceNotConfiguredError, StudioError, UpstreamError
from monkeygen.models.schemas import AnalyzeRequest, AnalyzeResponse, ErrorResponse
from monkeygen.services.images import decode_b64, strip_data_url
from monkeygen.services.openai_images import OpenAIImageService, get_openai_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/analyze", tags=["analyze"])


@router.post(
    "",
    response_model=AnalyzeResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def analyze_style(
    data: AnalyzeRequest,
    service: OpenAIImageService = Depends(get_openai_service),
):
    """Describe the art style of a base image in a few sentences."""
    if not service.is_configured:
        raise ServiceNotConfiguredError()

    if not data.image_base64:
        raise InvalidInputError("No image provided")

    image_b64 = strip_data_url(data.image_base64)
    decode_b64(image_b64)

    try:
        style = await service.describe_style(image_b64, data.mime_type)
    except StudioError:
        raise
    except Exception as e:
        logger.exception("Analyze error")
        raise UpstreamError(str(e) or "Analysis failed")

    return AnalyzeResponse(style_description=style)

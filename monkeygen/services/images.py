import base64
import binascii
import io
import logging

from PIL import Image, UnidentifiedImageError

from monkeygen.config import settings
from monkeygen.errors import InvalidInputError
from monkeygen.models.schemas import BaseImage

logger = logging.getLogger(__name__)

# Pillow format name -> media type accepted for upload
ALLOWED_FORMATS = {
    "PNG": "image/png",
    "JPEG": "image/jpeg",
    "WEBP": "image/webp",
}
ALLOWED_MEDIA_TYPES = set(ALLOWED_FORMATS.values()) | {"image/jpg"}


def strip_data_url(image_b64: str) -> str:
    """Remove a ``data:<type>;base64,`` prefix if present."""
    if "," in image_b64:
        image_b64 = image_b64.split(",", 1)[1]
    return image_b64.strip()


def decode_b64(image_b64: str) -> bytes:
    try:
        return base64.b64decode(strip_data_url(image_b64), validate=True)
    except (binascii.Error, ValueError):
        raise InvalidInputError("Image is not valid base64")


def load_base_image(
    data: bytes,
    media_type: str | None = None,
    max_bytes: int | None = None,
) -> BaseImage:
    """
    Validate raw upload bytes and wrap them as a BaseImage.

    Rejects empty uploads, files over the size limit, declared types
    outside PNG/JPEG/WEBP and anything Pillow cannot identify as one of
    those. The media type recorded is the one sniffed from the content.
    """
    max_bytes = settings.max_upload_bytes if max_bytes is None else max_bytes

    if not data:
        raise InvalidInputError("No image provided")

    if len(data) > max_bytes:
        raise InvalidInputError(f"Max {max_bytes // (1024 * 1024)}MB")

    if media_type and media_type.lower() not in ALLOWED_MEDIA_TYPES:
        raise InvalidInputError(f"Unsupported image type: {media_type}")

    try:
        with Image.open(io.BytesIO(data)) as image:
            image_format = image.format
            size = image.size
    except (UnidentifiedImageError, OSError):
        raise InvalidInputError("Could not read image")

    sniffed = ALLOWED_FORMATS.get(image_format or "")
    if sniffed is None:
        raise InvalidInputError(f"Unsupported image type: {image_format}")

    logger.info(f"Loaded base image: {image_format} {size[0]}x{size[1]}, {len(data)} bytes")
    return BaseImage(data=data, media_type=sniffed)


def load_base_image_b64(
    image_b64: str | None,
    media_type: str | None = None,
    max_bytes: int | None = None,
) -> BaseImage:
    if not image_b64:
        raise InvalidInputError("No image provided")
    return load_base_image(decode_b64(image_b64), media_type, max_bytes)

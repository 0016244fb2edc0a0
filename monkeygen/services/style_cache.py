import logging

logger = logging.getLogger(__name__)


class StyleCache:
    """
    Holds the style description of the currently loaded base image.

    The entry is keyed by the image fingerprint, so a lookup for any other
    image misses even if ``invalidate`` was never called.
    """

    def __init__(self):
        self._image_key: str | None = None
        self._description: str | None = None

    def get(self, image_key: str | None = None) -> str | None:
        if image_key is not None and image_key != self._image_key:
            return None
        return self._description

    def set(self, description: str, image_key: str | None = None) -> None:
        self._description = description
        self._image_key = image_key
        logger.info(f"[style-cache] Cached style for image {(image_key or '?')[:12]}")

    def invalidate(self) -> None:
        if self._description is not None:
            logger.info("[style-cache] Invalidated")
        self._description = None
        self._image_key = None

    @property
    def is_empty(self) -> bool:
        return self._description is None

"""
Error taxonomy shared by the HTTP boundaries, the studio API and the
generation orchestrator.

Every error carries the HTTP status it is rendered with and a stable
machine-readable ``code``; ``main.py`` turns them into
``{"error": ..., "code": ...}`` JSON bodies.
"""


class StudioError(Exception):
    status_code: int = 500
    code: str = "error"
    default_message: str = "Unexpected error"

    def __init__(self, message: str | None = None, status_code: int | None = None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code}


class ServiceNotConfiguredError(StudioError):
    status_code = 500
    code = "not_configured"
    default_message = "OPENAI_API_KEY not set in environment variables"


class InvalidInputError(StudioError):
    status_code = 400
    code = "invalid_input"
    default_message = "Invalid input"


class NotFoundError(StudioError):
    status_code = 404
    code = "not_found"
    default_message = "Not found"


class OutcomeUnavailableError(StudioError):
    status_code = 409
    code = "unavailable"
    default_message = "No image available for this item"


# Upstream (OpenAI) failures, mapped from the provider's status code


class UpstreamError(StudioError):
    status_code = 500
    code = "upstream_error"
    default_message = "Generation failed"


class UpstreamAuthError(UpstreamError):
    status_code = 401
    code = "unauthorized"
    default_message = "Invalid API key or no access to gpt-image-1"


class RateLimitedError(UpstreamError):
    status_code = 429
    code = "rate_limited"
    default_message = "Rate limit hit, wait a moment and retry"


class ContentPolicyError(UpstreamError):
    status_code = 400
    code = "content_policy"
    default_message = "Prompt rejected by content policy, try different traits"


class NoImageReturnedError(UpstreamError):
    status_code = 500
    code = "no_image"
    default_message = "No image in response"


# Failures seen by a caller of the two boundaries


class CollaboratorError(StudioError):
    status_code = 502
    code = "collaborator_failed"

    def __init__(
        self,
        message: str | None = None,
        status_code: int | None = None,
        reason: str | None = None,
    ):
        super().__init__(message, status_code)
        # Code reported by the boundary (not_configured, rate_limited, ...)
        self.reason = reason or self.code

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.reason}


class StyleAnalysisError(CollaboratorError):
    """Style analysis failed; aborts the whole run."""

    code = "style_analysis_failed"
    default_message = "Style analysis failed"


class ImageGenerationError(CollaboratorError):
    """A single variation failed. The run records it and moves on."""

    code = "generation_failed"
    default_message = "Generation failed"


class UnknownTraitError(KeyError):
    """A trait category that is not in the registry."""

    def __init__(self, category: str):
        self.category = category
        super().__init__(category)

    def __str__(self) -> str:
        return f"Unknown trait category: {self.category!r}"

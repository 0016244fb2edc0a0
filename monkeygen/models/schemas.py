import base64
import hashlib
from datetime import datetime
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Wire models use camelCase keys (imageBase64, mimeType, ...)."""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)


class RunState(str, Enum):
    IDLE = "idle"
    ANALYZING_STYLE = "analyzing_style"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"


class OutcomeStatus(str, Enum):
    PENDING = "pending"  # index not reached yet
    GENERATING = "generating"  # attempt started, no answer yet
    SUCCEEDED = "succeeded"
    FAILED = "failed"  # attempt made, no image


# Images


class BaseImage(BaseModel):
    """The uploaded character every variation is derived from."""

    model_config = ConfigDict(frozen=True)

    data: bytes
    media_type: str = "image/png"

    @property
    def fingerprint(self) -> str:
        return hashlib.sha256(self.data).hexdigest()

    @property
    def b64(self) -> str:
        return base64.b64encode(self.data).decode("utf-8")

    @property
    def data_url(self) -> str:
        return f"data:{self.media_type};base64,{self.b64}"


class GeneratedImage(BaseModel):
    """One generated image: inline base64 PNG or a remote URL, never both."""

    b64: str | None = None
    url: str | None = None

    @model_validator(mode="after")
    def _exactly_one(self):
        if bool(self.b64) == bool(self.url):
            raise ValueError("exactly one of b64 or url must be set")
        return self

    @property
    def src(self) -> str:
        if self.b64:
            return f"data:image/png;base64,{self.b64}"
        return self.url


# Run state


class VariationOutcome(BaseModel):
    index: int = Field(ge=1, description="1-based position in the run")
    prompt: str
    image: GeneratedImage | None = None
    error: str | None = Field(default=None, description="Failure reason, for display only")
    resolved: bool = False

    @property
    def status(self) -> OutcomeStatus:
        if not self.resolved:
            return OutcomeStatus.GENERATING
        return OutcomeStatus.SUCCEEDED if self.image else OutcomeStatus.FAILED


class ProgressState(BaseModel):
    completed: int = 0
    total: int = 0
    status: str = ""

    @property
    def percent(self) -> int:
        if self.total <= 0:
            return 0
        return round(self.completed / self.total * 100)


# Boundary: /api/analyze and /api/generate


class AnalyzeRequest(CamelModel):
    image_base64: str | None = None
    mime_type: str | None = None


class AnalyzeResponse(CamelModel):
    style_description: str


class GenerateRequest(CamelModel):
    image_base64: str | None = None
    mime_type: str | None = None
    prompt: str | None = None


class GenerateResponse(BaseModel):
    b64: str | None = None
    url: str | None = None


class ErrorResponse(BaseModel):
    error: str
    code: str


# Studio API


class TraitCategory(BaseModel):
    id: str
    label: str
    fragments: list[str]


class TraitsResponse(CamelModel):
    categories: list[TraitCategory]
    default_active: list[str]
    count_choices: list[int]
    default_count: int
    cost_per_image: float


class SessionCreate(CamelModel):
    image_base64: str = Field(description="Base64 encoded base image, data URL prefix allowed")
    mime_type: str | None = None


class SessionResponse(CamelModel):
    id: str
    created_at: datetime
    media_type: str
    image_bytes: int
    state: RunState
    style_description: str | None = None


class RunRequest(CamelModel):
    count: int = Field(default=3, ge=1, le=20)
    traits: list[str] | None = Field(
        default=None,
        description="Trait categories to vary; defaults to the standard set",
    )
    extra_prompt: str | None = None


class OutcomeView(CamelModel):
    index: int
    status: OutcomeStatus
    prompt: str
    image_src: str | None = None
    error: str | None = None


class ProgressView(CamelModel):
    completed: int
    total: int
    status: str
    percent: int


class SessionDetail(CamelModel):
    id: str
    created_at: datetime
    state: RunState
    run_id: int
    style_description: str | None = None
    progress: ProgressView
    outcomes: list[OutcomeView]
    generated_count: int
    failed_count: int
    estimated_cost: float
    last_error: str | None = None


class ExportResponse(CamelModel):
    session_id: str
    files: list[str]

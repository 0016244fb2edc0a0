from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Read from OPENAI_API_KEY. Left unset, every boundary call answers
    # with a "not configured" error instead of failing at startup.
    openai_api_key: str | None = None
    openai_base_url: str = "https://api.openai.com/v1"

    # Vision model for the one-off style analysis
    vision_model: str = "gpt-4o"
    analyze_max_tokens: int = 400
    analyze_timeout: float = 30.0

    # Image edit model used for every variation
    image_model: str = "gpt-image-1"
    image_size: str = "1024x1024"
    generate_timeout: float = 60.0

    max_upload_bytes: int = 5 * 1024 * 1024
    outputs_dir: Path = Path("./outputs")

    # Rough gpt-image-1 price per 1024x1024 image, display only
    cost_per_image: float = 0.042

    # When set, studio sessions call /api/analyze and /api/generate on this
    # deployment instead of talking to OpenAI in-process.
    generation_api_url: str | None = None

    def ensure_outputs_dir(self) -> Path:
        self.outputs_dir.mkdir(parents=True, exist_ok=True)
        return self.outputs_dir


settings = Settings()

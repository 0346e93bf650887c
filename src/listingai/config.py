from enum import Enum
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, HttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict


HARM_CATEGORIES = [
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
]


class ModelChoice(str, Enum):
    DESCRIPTION = "description"
    VISION = "vision"
    VISION_PRO = "vision_pro"
    IMAGE = "image"


class ModelProfile(BaseModel):
    model: str = Field(..., description="Model identifier used in the request path.")
    supports_image_output: bool = Field(
        False, description="Whether the model can answer with inline image parts."
    )


class ModelProfiles(BaseModel):
    description: ModelProfile = ModelProfile(model="gemini-1.5-pro")
    vision: ModelProfile = ModelProfile(model="gemini-2.0-flash")
    vision_pro: ModelProfile = ModelProfile(model="gemini-2.0-pro")
    image: ModelProfile = ModelProfile(
        model="gemini-2.0-flash-exp-image-generation", supports_image_output=True
    )

    def profile(self, choice: ModelChoice) -> ModelProfile:
        return getattr(self, ModelChoice(choice).value)

    def items(self):
        return [(choice, self.profile(choice)) for choice in ModelChoice]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="LISTINGAI__",
        env_nested_delimiter="__",
        extra="ignore",
    )

    base_url: HttpUrl = Field(
        "https://generativelanguage.googleapis.com/v1beta",
        description="Root of the generative language REST API.",
    )
    credential_file: Path = Field(
        Path.home() / ".listingai" / "credentials.json",
        description="JSON file holding the stored API key.",
    )
    output_dir: str = Field(
        "generated_images", description="Default directory to save generated images."
    )
    request_timeout: Optional[float] = Field(
        120.0, description="Per-request timeout in seconds. None disables it."
    )
    default_tone: str = Field(
        "professional", description="Tone used when none is given for descriptions."
    )
    safety_threshold: str = Field(
        "BLOCK_MEDIUM_AND_ABOVE",
        description="Threshold applied to every harm category.",
    )
    models: ModelProfiles = ModelProfiles()

    @property
    def api_root(self) -> str:
        return str(self.base_url).rstrip("/")

    def safety_settings(self) -> List[dict]:
        return [
            {"category": category, "threshold": self.safety_threshold}
            for category in HARM_CATEGORIES
        ]


settings = Settings()

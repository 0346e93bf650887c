import base64
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class GenerationOptions(BaseModel):
    temperature: Optional[float] = Field(0.7, ge=0.0, le=2.0)
    max_tokens: Optional[int] = Field(4096, ge=1)
    top_p: Optional[float] = Field(0.95, ge=0.0, le=1.0)
    top_k: Optional[int] = Field(40, ge=1)
    candidate_count: Optional[int] = Field(None, ge=1, le=8)
    aspect_ratio: Optional[str] = None
    style: Optional[str] = None
    tone: Optional[str] = None
    response_modalities: Optional[List[Literal["Text", "Image"]]] = None

    def to_generation_config(self) -> dict:
        """Map to the provider's camelCase ``generationConfig`` object.

        Prompt-level options (aspect ratio, style, tone) are rendered into the
        prompt text by :mod:`listingai.prompts` and are not sent here.
        """
        config = {
            "temperature": self.temperature,
            "maxOutputTokens": self.max_tokens,
            "topP": self.top_p,
            "topK": self.top_k,
            "candidateCount": self.candidate_count,
            "responseModalities": self.response_modalities,
        }
        return {k: v for k, v in config.items() if v is not None}


class InlineImage(BaseModel):
    mime_type: str = "image/jpeg"
    data: str = Field(..., description="Base64 image bytes without a data URL prefix.")

    def to_part(self) -> dict:
        return {"inlineData": {"mimeType": self.mime_type, "data": self.data}}


class GenerationRequest(BaseModel):
    prompt: str
    image: Optional[InlineImage] = None
    options: GenerationOptions = GenerationOptions()

    def to_body(self, safety_settings: Optional[List[dict]] = None) -> dict:
        parts: List[dict] = [{"text": self.prompt}]
        if self.image is not None:
            parts.append(self.image.to_part())
        body = {
            "contents": [{"parts": parts}],
            "generationConfig": self.options.to_generation_config(),
        }
        if safety_settings:
            body["safetySettings"] = safety_settings
        return body


class GenerationResult(BaseModel):
    text: Optional[str] = None
    image_data: Optional[str] = None
    mime_type: Optional[str] = None
    success: bool = True
    error: Optional[str] = None
    error_kind: Optional[str] = None
    # Set when the image is a locally rendered stand-in, never a model output.
    placeholder: bool = False

    @property
    def has_image(self) -> bool:
        return bool(self.image_data)

    def image_bytes(self) -> bytes:
        if not self.image_data:
            raise ValueError("Result carries no image data.")
        return base64.b64decode(self.image_data)

    def data_url(self) -> Optional[str]:
        if not self.image_data:
            return None
        return f"data:{self.mime_type or 'image/png'};base64,{self.image_data}"


class ProductAttributes(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    category: Optional[str] = None
    color: Optional[str] = None
    material: Optional[str] = None
    style: Optional[str] = None
    use_cases: List[str] = Field(default_factory=list, alias="useCases")
    size: Optional[str] = None
    brand: Optional[str] = None
    other_features: List[str] = Field(default_factory=list, alias="otherFeatures")

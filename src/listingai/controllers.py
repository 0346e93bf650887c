"""Feature controllers: one Idle/Pending state machine per listing tool.

A controller validates its form input, formats the prompt, issues exactly one
provider call and keeps the outcome in memory until the caller accepts or
discards it. Errors are caught here and stored on the controller; the outer
surface (CLI or web) decides how to render them.
"""

import json
import logging
import re
from enum import Enum
from typing import Awaitable, Callable, List, Optional

from pydantic import ValidationError

from listingai import prompts
from listingai.config import ModelChoice
from listingai.context import AppContext
from listingai.errors import GenerationError, MissingInput, ParseFailure
from listingai.events import EventBus, ImageSelected
from listingai.models import GenerationOptions, GenerationResult, ProductAttributes
from listingai.providers.gemini_provider import GeminiProvider
from listingai.utils import (
    extension_for_mime,
    generate_filename,
    render_placeholder_image,
    sanitize_filename,
    split_data_url,
)

logger = logging.getLogger(__name__)

DESCRIPTION_OPTIONS = GenerationOptions(temperature=0.7, max_tokens=4096, top_p=0.95, top_k=40)
IMAGE_OPTIONS = GenerationOptions(temperature=0.7, max_tokens=4096, top_p=0.95, top_k=40)
IMAGE_TO_TEXT_OPTIONS = GenerationOptions(temperature=0.4, max_tokens=1024, top_p=0.95, top_k=40)
ATTRIBUTE_OPTIONS = GenerationOptions(temperature=0.2, max_tokens=1024, top_p=None, top_k=None)
EDIT_OPTIONS = GenerationOptions(temperature=0.5, max_tokens=2048, top_p=None, top_k=None)
REGENERATE_OPTIONS = GenerationOptions(temperature=0.8, max_tokens=2048, top_p=None, top_k=None)

MIN_IMAGES = 1
MAX_IMAGES = 4

JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")

Call = Callable[[GeminiProvider], Awaitable[GenerationResult]]


class ControllerState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"


class EditMode(str, Enum):
    EDIT = "edit"
    REGENERATE = "regenerate"


def parse_attributes(text: str) -> ProductAttributes:
    match = JSON_OBJECT_RE.search(text or "")
    if not match:
        raise ParseFailure("Could not find product attributes in the model response.")
    try:
        return ProductAttributes.model_validate(json.loads(match.group(0)))
    except (ValueError, ValidationError) as e:
        logger.error(f"Error parsing attribute JSON: {e}")
        raise ParseFailure("Could not parse product attributes.") from e


class GenerationController:
    feature = "generation"

    def __init__(self, context: AppContext, bus: EventBus):
        self.context = context
        self.bus = bus
        self.state = ControllerState.IDLE
        self.result: Optional[GenerationResult] = None
        self.error: Optional[GenerationError] = None

    @property
    def trigger_enabled(self) -> bool:
        return self.state is ControllerState.IDLE

    @property
    def can_accept(self) -> bool:
        return (
            self.state is ControllerState.IDLE
            and self.result is not None
            and self.result.success
        )

    @property
    def offer_credential_update(self) -> bool:
        return self.error is not None and self.error.suggests_credential_update

    def discard(self) -> None:
        self.result = None
        self.error = None

    def _fail(self, error: GenerationError) -> GenerationResult:
        self.error = error
        self.result = GenerationResult(
            success=False, error=error.message, error_kind=error.kind.value
        )
        return self.result

    def _reject(self, error: GenerationError) -> Optional[GenerationResult]:
        """Fail on invalid input without leaving Idle or touching the network."""
        if self.state is ControllerState.PENDING:
            logger.warning(f"{self.feature} request already in progress; trigger ignored")
            return None
        self.discard()
        return self._fail(error)

    def _recover(self, error: GenerationError) -> Optional[GenerationResult]:
        return None

    async def _run(self, call: Call) -> Optional[GenerationResult]:
        if self.state is ControllerState.PENDING:
            logger.warning(f"{self.feature} request already in progress; trigger ignored")
            return None
        self.discard()
        try:
            provider = self.context.provider
        except MissingInput as e:
            return self._fail(e)

        self.state = ControllerState.PENDING
        try:
            result = await call(provider)
        except GenerationError as e:
            logger.error(f"Error during {self.feature}: {e.message}")
            recovered = self._recover(e)
            if recovered is None:
                return self._fail(e)
            self.error = e
            self.result = recovered
            return recovered
        finally:
            self.state = ControllerState.IDLE
        self.result = result
        return result


class DescriptionController(GenerationController):
    feature = "description generation"

    def draft_prompt(self, product_name: str = "") -> str:
        return prompts.draft_description_prompt(product_name)

    async def generate(
        self, prompt: str, product_name: str = "", tone: Optional[str] = None
    ) -> Optional[GenerationResult]:
        if not (prompt or "").strip():
            return self._reject(MissingInput("prompt", "Please enter a product description prompt first."))
        tone = tone or self.context.config.default_tone
        full_prompt = prompts.description_prompt(prompt, product_name, tone)
        options = DESCRIPTION_OPTIONS.model_copy(update={"tone": tone})

        async def call(provider: GeminiProvider) -> GenerationResult:
            text = await provider.generate_text(full_prompt, options, ModelChoice.DESCRIPTION)
            return GenerationResult(text=text)

        return await self._run(call)

    def accept(self) -> Optional[str]:
        if not self.can_accept:
            return None
        return self.result.text


class ImageGenerationController(GenerationController):
    feature = "image generation"

    def __init__(self, context: AppContext, bus: EventBus):
        super().__init__(context, bus)
        self.allow_placeholder = False
        self.last_prompt = ""
        self.results: List[GenerationResult] = []

    @property
    def can_accept(self) -> bool:
        return super().can_accept and self.result.has_image

    def discard(self) -> None:
        super().discard()
        self.results = []

    def _recover(self, error: GenerationError) -> Optional[GenerationResult]:
        if not self.allow_placeholder:
            return None
        logger.warning(f"Image generation failed ({error.kind.value}); using placeholder image")
        # Still a failure: shown to the user but never accepted as a product image.
        return GenerationResult(
            image_data=render_placeholder_image(),
            mime_type="image/png",
            success=False,
            placeholder=True,
            error=error.message,
            error_kind=error.kind.value,
        )

    async def generate(
        self,
        prompt: str,
        style: Optional[str] = "product-photography",
        background: Optional[str] = "white",
        aspect_ratio: Optional[str] = "1:1",
        detail_level: Optional[str] = "high",
        preset: Optional[str] = None,
        allow_placeholder: bool = False,
        number_of_images: int = 1,
    ) -> Optional[GenerationResult]:
        """Generate up to ``number_of_images`` candidates; returns the first.

        All candidates are kept on :attr:`results` so one can be picked with
        :meth:`accept`.
        """
        if not (prompt or "").strip():
            return self._reject(MissingInput("prompt", "Please enter an image description first."))
        if not MIN_IMAGES <= number_of_images <= MAX_IMAGES:
            return self._reject(
                MissingInput(
                    "number_of_images",
                    f"Please choose between {MIN_IMAGES} and {MAX_IMAGES} images.",
                )
            )
        if preset:
            full_prompt = prompts.preset_prompt(preset, prompt)
        else:
            full_prompt = prompts.image_prompt(prompt, style, background, aspect_ratio, detail_level)
        options = IMAGE_OPTIONS.model_copy(update={"style": style, "aspect_ratio": aspect_ratio})

        async def call(provider: GeminiProvider) -> GenerationResult:
            self.allow_placeholder = allow_placeholder
            self.last_prompt = prompt
            self.results = await provider.generate_images(
                full_prompt, options, ModelChoice.IMAGE, count=number_of_images
            )
            return self.results[0]

        return await self._run(call)

    def accept(self, filename: Optional[str] = None, index: int = 0) -> Optional[ImageSelected]:
        if not self.can_accept or not 0 <= index < len(self.results):
            return None
        chosen = self.results[index]
        if not chosen.has_image:
            return None
        event = ImageSelected(
            filename=sanitize_filename(filename)
            if filename
            else generate_filename(self.last_prompt, extension_for_mime(chosen.mime_type)),
            data_url=chosen.data_url(),
        )
        self.bus.publish(event)
        return event


class ImageInputController(GenerationController):
    """Base for features that work on the currently selected product image."""

    def __init__(self, context: AppContext, bus: EventBus, follow_selection: bool = True):
        super().__init__(context, bus)
        self.selected_image: Optional[ImageSelected] = None
        if follow_selection:
            bus.subscribe(ImageSelected, self.on_image_selected)

    def on_image_selected(self, event: ImageSelected) -> None:
        self.selected_image = event

    def select_image(self, data_url: str, filename: str = "image") -> None:
        self.on_image_selected(ImageSelected(filename=filename, data_url=data_url))

    def _image_input(self, image: Optional[str]):
        source = image or (self.selected_image.data_url if self.selected_image else None)
        if not source or not source.strip():
            return None
        mime_type, data = split_data_url(source)
        if not data:
            return None
        return mime_type, data


class ImageToTextController(ImageInputController):
    feature = "image-to-text"

    def __init__(self, context: AppContext, bus: EventBus, follow_selection: bool = True):
        super().__init__(context, bus, follow_selection)
        self.attributes: Optional[ProductAttributes] = None

    def discard(self) -> None:
        super().discard()
        self.attributes = None

    async def generate(
        self,
        product_name: str = "",
        tone: Optional[str] = None,
        max_length: int = 200,
        include_features: bool = True,
        include_materials: bool = True,
        include_use_cases: bool = True,
        model: ModelChoice = ModelChoice.VISION,
        image: Optional[str] = None,
    ) -> Optional[GenerationResult]:
        image_input = self._image_input(image)
        if image_input is None:
            return self._reject(MissingInput("image", "Please select a product image first."))
        mime_type, data = image_input
        tone = tone or self.context.config.default_tone
        prompt = prompts.image_description_prompt(
            product_name, tone, max_length, include_features, include_materials, include_use_cases
        )
        options = IMAGE_TO_TEXT_OPTIONS.model_copy(update={"tone": tone})

        async def call(provider: GeminiProvider) -> GenerationResult:
            return await provider.generate_from_image(prompt, data, mime_type, options, model)

        return await self._run(call)

    async def extract_attributes(self, image: Optional[str] = None) -> Optional[ProductAttributes]:
        image_input = self._image_input(image)
        if image_input is None:
            self._reject(MissingInput("image", "Please select a product image first."))
            return None
        mime_type, data = image_input

        async def call(provider: GeminiProvider) -> GenerationResult:
            result = await provider.generate_from_image(
                prompts.ATTRIBUTES_PROMPT, data, mime_type, ATTRIBUTE_OPTIONS, ModelChoice.VISION
            )
            self.attributes = parse_attributes(result.text)
            return result

        await self._run(call)
        return self.attributes

    def accept(self) -> Optional[str]:
        if not self.can_accept:
            return None
        return self.result.text


class ImageEditController(ImageInputController):
    feature = "image editing"

    def __init__(self, context: AppContext, bus: EventBus, follow_selection: bool = True):
        super().__init__(context, bus, follow_selection)
        self.last_instruction = ""

    @property
    def can_accept(self) -> bool:
        return super().can_accept and self.result.has_image

    async def generate(
        self,
        instruction: str,
        mode: EditMode = EditMode.EDIT,
        image: Optional[str] = None,
    ) -> Optional[GenerationResult]:
        mode = EditMode(mode)
        if not (instruction or "").strip():
            return self._reject(MissingInput("instruction", "Please describe the change you want first."))
        image_input = self._image_input(image)
        if image_input is None:
            return self._reject(MissingInput("image", "Please select a product image first."))
        mime_type, data = image_input
        if mode is EditMode.EDIT:
            prompt, options = prompts.image_edit_prompt(instruction), EDIT_OPTIONS
        else:
            prompt, options = prompts.image_regenerate_prompt(instruction), REGENERATE_OPTIONS

        async def call(provider: GeminiProvider) -> GenerationResult:
            self.last_instruction = instruction
            result = await provider.generate_from_image(
                prompt, data, mime_type, options, ModelChoice.IMAGE
            )
            if mode is EditMode.REGENERATE and not result.has_image:
                raise ParseFailure("The model returned text only; no image was generated.")
            return result

        return await self._run(call)

    def accept(self, filename: Optional[str] = None) -> Optional[ImageSelected]:
        if not self.can_accept:
            return None
        event = ImageSelected(
            filename=sanitize_filename(filename)
            if filename
            else generate_filename(self.last_instruction, extension_for_mime(self.result.mime_type)),
            data_url=self.result.data_url(),
        )
        self.bus.publish(event)
        return event

from abc import ABC, abstractmethod
from typing import List

from listingai.config import ModelChoice
from listingai.models import GenerationOptions, GenerationResult


class BaseGenerativeProvider(ABC):
    @abstractmethod
    async def generate_text(
        self,
        prompt: str,
        options: GenerationOptions,
        model: ModelChoice = ModelChoice.DESCRIPTION,
    ) -> str:
        """
        Generates text for the prompt and returns the first text part.
        """
        pass

    @abstractmethod
    async def generate_image(
        self,
        prompt: str,
        options: GenerationOptions,
        model: ModelChoice = ModelChoice.IMAGE,
    ) -> GenerationResult:
        """
        Generates an image (and optional caption text) for the prompt.
        """
        pass

    @abstractmethod
    async def generate_images(
        self,
        prompt: str,
        options: GenerationOptions,
        model: ModelChoice = ModelChoice.IMAGE,
        count: int = 1,
    ) -> List[GenerationResult]:
        """
        Asks for up to ``count`` image candidates in a single request.
        """
        pass

    @abstractmethod
    async def generate_from_image(
        self,
        prompt: str,
        image_base64: str,
        mime_type: str,
        options: GenerationOptions,
        model: ModelChoice = ModelChoice.VISION,
    ) -> GenerationResult:
        """
        Sends the prompt together with an inlined image.
        """
        pass

    @abstractmethod
    async def validate_credential(self) -> bool:
        pass

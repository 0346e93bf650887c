import logging
from typing import Optional

import httpx

from listingai.config import Settings, settings
from listingai.errors import MissingInput
from listingai.providers.gemini_provider import GeminiProvider

logger = logging.getLogger(__name__)


class AppContext:
    """Holds the active provider; replaced only through :meth:`set_credential`."""

    def __init__(
        self,
        config: Settings = settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.transport = transport
        self._provider: Optional[GeminiProvider] = None

    def make_provider(self, credential: str) -> GeminiProvider:
        return GeminiProvider(credential, config=self.config, transport=self.transport)

    def set_credential(self, credential: Optional[str]) -> None:
        if credential:
            self._provider = self.make_provider(credential)
            logger.debug("Generative client rebuilt for updated API key")
        else:
            self._provider = None

    @property
    def has_provider(self) -> bool:
        return self._provider is not None

    @property
    def provider(self) -> GeminiProvider:
        if self._provider is None:
            raise MissingInput("credential", "No Gemini API key is set. Please set one first.")
        return self._provider

    async def check(self, credential: str) -> bool:
        return await self.make_provider(credential).validate_credential()

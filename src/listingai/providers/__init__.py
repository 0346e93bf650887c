from listingai.providers.base_provider import BaseGenerativeProvider
from listingai.providers.gemini_provider import GeminiProvider

__all__ = ["BaseGenerativeProvider", "GeminiProvider"]

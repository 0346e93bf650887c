import copy
import json
import logging
from typing import List, Optional

import httpx

from listingai.config import ModelChoice, Settings, settings
from listingai.errors import (
    HttpFailure,
    InvalidCredential,
    ParseFailure,
    SafetyBlocked,
    TransportFailure,
)
from listingai.models import (
    GenerationOptions,
    GenerationRequest,
    GenerationResult,
    InlineImage,
)
from listingai.providers.base_provider import BaseGenerativeProvider

logger = logging.getLogger(__name__)

CREDENTIAL_STATUS_CODES = (401, 403)
SAFETY_FINISH_REASONS = ("SAFETY", "PROHIBITED_CONTENT", "BLOCKLIST")


def _redacted(body: dict) -> dict:
    """Copy of a request body with inline image bytes elided for logging."""
    clone = copy.deepcopy(body)
    for content in clone.get("contents", []):
        for part in content.get("parts", []):
            inline = part.get("inlineData")
            if inline and "data" in inline:
                inline["data"] = f"<{len(inline['data'])} base64 chars>"
    return clone


def error_from_response(response: httpx.Response) -> HttpFailure | InvalidCredential:
    try:
        payload = response.json()
    except ValueError:
        payload = {}
    error = payload.get("error") if isinstance(payload, dict) else None
    message = None
    reasons: List[str] = []
    if isinstance(error, dict):
        message = error.get("message")
        for detail in error.get("details") or []:
            if isinstance(detail, dict) and detail.get("reason"):
                reasons.append(detail["reason"])
    if response.status_code in CREDENTIAL_STATUS_CODES or "API_KEY_INVALID" in reasons:
        return InvalidCredential(response.status_code, message)
    return HttpFailure(response.status_code, message)


def parts_of(candidate) -> Optional[list]:
    if not isinstance(candidate, dict):
        return None
    content = candidate.get("content")
    if not isinstance(content, dict):
        return None
    parts = content.get("parts")
    if isinstance(parts, list) and parts:
        return parts
    return None


def candidate_parts(data: dict) -> Optional[list]:
    candidates = data.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return None
    return parts_of(candidates[0])


def raise_for_missing_content(data: dict) -> None:
    """Raise the error matching a response that carried no usable parts."""
    feedback = data.get("promptFeedback")
    if isinstance(feedback, dict) and feedback.get("blockReason"):
        logger.error(f"Gemini content filtered: {feedback}")
        raise SafetyBlocked(str(feedback["blockReason"]))
    candidates = data.get("candidates")
    if isinstance(candidates, list) and candidates and isinstance(candidates[0], dict):
        finish_reason = candidates[0].get("finishReason")
        if finish_reason in SAFETY_FINISH_REASONS:
            logger.error(f"Gemini candidate stopped for {finish_reason}")
            raise SafetyBlocked(finish_reason)
    logger.error(f"Unexpected API response structure: {json.dumps(data)[:500]}")
    raise ParseFailure()


def collect_parts(parts: list) -> GenerationResult:
    """Keep the last text part and the last inline image part."""
    result = GenerationResult()
    for part in parts:
        if not isinstance(part, dict):
            continue
        if part.get("text"):
            result.text = part["text"]
        elif isinstance(part.get("inlineData"), dict) and part["inlineData"].get("data"):
            result.image_data = part["inlineData"]["data"]
            result.mime_type = part["inlineData"].get("mimeType") or "image/png"
    return result


class GeminiProvider(BaseGenerativeProvider):
    def __init__(
        self,
        api_key: str,
        config: Settings = settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.config = config
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=self.transport, timeout=self.config.request_timeout
        )

    def _generate_url(self, model: ModelChoice) -> str:
        profile = self.config.models.profile(model)
        return f"{self.config.api_root}/models/{profile.model}:generateContent"

    def _with_modalities(
        self, options: GenerationOptions, model: ModelChoice
    ) -> GenerationOptions:
        if self.config.models.profile(model).supports_image_output and not options.response_modalities:
            return options.model_copy(update={"response_modalities": ["Text", "Image"]})
        return options

    async def _post(self, model: ModelChoice, request: GenerationRequest) -> dict:
        body = request.to_body(self.config.safety_settings())
        url = self._generate_url(model)
        logger.debug(
            f"POST {url}\n{json.dumps(_redacted(body), indent=2, ensure_ascii=False)}"
        )
        try:
            async with self._client() as client:
                response = await client.post(
                    url, params={"key": self.api_key}, json=body
                )
        except httpx.HTTPError as e:
            logger.error(f"Error calling Gemini API: {e!r}")
            raise TransportFailure(str(e) or type(e).__name__) from e

        if not response.is_success:
            error = error_from_response(response)
            logger.error(f"Gemini API error response: {error.message}")
            raise error
        try:
            data = response.json()
        except ValueError as e:
            raise ParseFailure("The API response was not valid JSON.") from e
        if not isinstance(data, dict):
            raise ParseFailure()
        return data

    async def generate_text(
        self,
        prompt: str,
        options: GenerationOptions,
        model: ModelChoice = ModelChoice.DESCRIPTION,
    ) -> str:
        data = await self._post(model, GenerationRequest(prompt=prompt, options=options))
        return self._first_text(data)

    async def generate_image(
        self,
        prompt: str,
        options: GenerationOptions,
        model: ModelChoice = ModelChoice.IMAGE,
    ) -> GenerationResult:
        results = await self.generate_images(prompt, options, model)
        return results[0]

    async def generate_images(
        self,
        prompt: str,
        options: GenerationOptions,
        model: ModelChoice = ModelChoice.IMAGE,
        count: int = 1,
    ) -> List[GenerationResult]:
        """One request asking for ``count`` candidates.

        The service may return fewer candidates than asked for; every
        candidate carrying text or an image becomes one result.
        """
        options = self._with_modalities(options, model)
        if count > 1:
            options = options.model_copy(update={"candidate_count": count})
        data = await self._post(model, GenerationRequest(prompt=prompt, options=options))
        return self._candidate_results(data)

    async def generate_from_image(
        self,
        prompt: str,
        image_base64: str,
        mime_type: str,
        options: GenerationOptions,
        model: ModelChoice = ModelChoice.VISION,
    ) -> GenerationResult:
        request = GenerationRequest(
            prompt=prompt,
            image=InlineImage(mime_type=mime_type, data=image_base64),
            options=self._with_modalities(options, model),
        )
        data = await self._post(model, request)
        if self.config.models.profile(model).supports_image_output:
            return self._text_and_image(data)
        return GenerationResult(text=self._first_text(data))

    async def validate_credential(self) -> bool:
        try:
            async with self._client() as client:
                response = await client.get(
                    f"{self.config.api_root}/models", params={"key": self.api_key}
                )
        except httpx.HTTPError as e:
            logger.warning(f"API key validation error: {e!r}")
            return False
        return response.is_success

    @staticmethod
    def _first_text(data: dict) -> str:
        parts = candidate_parts(data)
        if parts is None:
            raise_for_missing_content(data)
        first = parts[0]
        text = first.get("text") if isinstance(first, dict) else None
        if not isinstance(text, str) or not text.strip():
            raise ParseFailure()
        return text

    @staticmethod
    def _candidate_results(data: dict) -> List[GenerationResult]:
        results = []
        candidates = data.get("candidates")
        for candidate in candidates if isinstance(candidates, list) else []:
            parts = parts_of(candidate)
            if parts is None:
                continue
            result = collect_parts(parts)
            if result.text or result.image_data:
                results.append(result)
        if results:
            return results
        if candidate_parts(data) is None:
            raise_for_missing_content(data)
        raise ParseFailure("The response contained neither text nor image data.")

    @staticmethod
    def _text_and_image(data: dict) -> GenerationResult:
        parts = candidate_parts(data)
        if parts is None:
            raise_for_missing_content(data)
        result = collect_parts(parts)
        if not result.text and not result.image_data:
            raise ParseFailure("The response contained neither text nor image data.")
        return result

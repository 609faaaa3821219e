from typing import Optional

import httpx

from relay.logging_config import get_logger
from relay.services.llm.base import LLMError, LLMProvider, LLMResponse

logger = get_logger("llm.gemini")


class GeminiProvider(LLMProvider):
    """Google Gemini ``generateContent`` provider."""

    BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

    def __init__(self, api_key: str, default_model: str = "gemini-2.0-flash", timeout_seconds: float = 60.0):
        self.api_key = api_key
        self.default_model = default_model
        self.timeout_seconds = timeout_seconds

    def generate(
        self,
        prompt: str,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> LLMResponse:
        """Generate response from Gemini. Empty content means no candidate came back."""
        model = model or self.default_model

        payload = {"contents": [{"parts": [{"text": prompt}]}]}
        generation_config = {}
        if temperature is not None:
            generation_config["temperature"] = temperature
        if max_tokens is not None:
            generation_config["maxOutputTokens"] = max_tokens
        if generation_config:
            payload["generationConfig"] = generation_config

        logger.debug(f"Gemini request: model={model}, prompt_chars={len(prompt)}")

        try:
            with httpx.Client(timeout=self.timeout_seconds) as client:
                response = client.post(
                    self.BASE_URL.format(model=model),
                    headers={
                        "Content-Type": "application/json",
                        "X-goog-api-key": self.api_key,
                    },
                    json=payload,
                )
        except httpx.HTTPError as e:
            raise LLMError(f"Gemini transport error: {e}") from e

        logger.debug(f"Gemini response status: {response.status_code}")

        if response.status_code != 200:
            logger.error(f"Gemini error: {response.text}")
            raise LLMError(f"Gemini API error: {response.status_code} - {response.text}")

        data = response.json()

        content = ""
        candidates = data.get("candidates") or []
        if candidates:
            parts = (candidates[0].get("content") or {}).get("parts") or []
            if parts:
                content = parts[0].get("text") or ""
        logger.debug(f"Gemini content: {content[:100] if content else 'EMPTY'}")

        return LLMResponse(
            content=content,
            model=data.get("modelVersion", model),
            usage=data.get("usageMetadata"),
        )

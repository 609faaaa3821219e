from relay.services.llm.base import LLMError, LLMProvider, LLMResponse
from relay.services.llm.gemini_provider import GeminiProvider

__all__ = ["LLMError", "LLMProvider", "LLMResponse", "GeminiProvider"]

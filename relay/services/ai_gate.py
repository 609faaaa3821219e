from typing import Optional

from relay.logging_config import get_logger
from relay.services.directory import GLOBAL_INSTRUCTION_KEY, DirectoryStore
from relay.services.llm import LLMProvider

logger = get_logger("ai_gate")


def build_prompt(instruction: Optional[str], text: str) -> str:
    if instruction:
        return f"{instruction}\n\nUser: {text}"
    return text


class AIGate:
    """Produces automatic replies. Never raises: no answer is a valid outcome."""

    def __init__(self, store: DirectoryStore, provider: Optional[LLMProvider]):
        self.store = store
        self.provider = provider

    def maybe_respond(self, wa_id: str, text: str) -> Optional[str]:
        """Single generation attempt for a text message; None on any failure."""
        if self.provider is None:
            return None

        try:
            prompt = build_prompt(self.store.get_setting(GLOBAL_INSTRUCTION_KEY), text)
            response = self.provider.generate(prompt)
        except Exception as e:
            logger.warning(
                "AI generation failed",
                extra={"context": {"wa_id": wa_id, "error": str(e)}},
            )
            return None

        answer = (response.content or "").strip() if response else ""
        if not answer:
            logger.info("AI returned no candidate", extra={"context": {"wa_id": wa_id}})
            return None
        return answer

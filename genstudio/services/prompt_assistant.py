"""Prompt assistant service wrapping the prompt optimizer agent."""

import logging
from typing import Any, Literal, Optional

from genstudio.agents.prompt_optimizer import OptimizedPrompt
from genstudio.models.params import (
    AUDIO_PROMPT_MAX_CHARS,
    IMAGE_PROMPT_MAX_CHARS,
    VIDEO_PROMPT_MAX_CHARS,
)
from genstudio.utils.errors import PromptAssistantError, ValidationError

logger = logging.getLogger(__name__)

Target = Literal["video", "image", "audio"]

TARGET_LIMITS = {
    "video": VIDEO_PROMPT_MAX_CHARS,
    "image": IMAGE_PROMPT_MAX_CHARS,
    "audio": AUDIO_PROMPT_MAX_CHARS,
}
MAX_VARIATIONS = 5


def fit_to_limit(text: str, limit: int) -> str:
    """Trim ``text`` to ``limit`` characters, cutting on a word boundary when possible."""
    text = text.strip()
    if len(text) <= limit:
        return text
    cut = text[:limit]
    space = cut.rfind(" ")
    if space > limit // 2:
        cut = cut[:space]
    return cut.rstrip(" ,;:-")


def check_request(prompt: str, target: str) -> None:
    if not prompt or not prompt.strip():
        raise ValidationError("prompt", "prompt cannot be empty")
    if target not in TARGET_LIMITS:
        raise ValidationError("target", f"target must be one of {', '.join(TARGET_LIMITS)}")


class PromptAssistant:
    """Optimizes prompts for a target media kind."""

    def __init__(self, agent: Optional[Any] = None) -> None:
        """
        Initialize the PromptAssistant.

        Args:
            agent: PydanticAI agent returning OptimizedPrompt (created on first use)
        """
        self._agent = agent

    def _get_agent(self) -> Any:
        """Lazy-load the optimizer agent."""
        if self._agent is None:
            from genstudio.agents.prompt_optimizer import create_prompt_optimizer_agent

            self._agent = create_prompt_optimizer_agent()
        return self._agent

    def build_request(
        self, prompt: str, target: str, model: Optional[str], variation: Optional[tuple[int, int]] = None
    ) -> str:
        lines = [
            f"TARGET: {target}",
            f"CHARACTER LIMIT: {TARGET_LIMITS[target]}",
        ]
        if model:
            lines.append(f"MODEL: {model}")
        if variation:
            index, count = variation
            lines.append(f"VARIATION {index} of {count}: take a different creative approach")
        lines.extend(["", "IDEA:", prompt.strip()])
        return "\n".join(lines)

    async def optimize(
        self,
        prompt: str,
        target: str = "image",
        model: Optional[str] = None,
    ) -> OptimizedPrompt:
        """
        Rewrite a prompt for the target media kind.

        Args:
            prompt: The user's draft prompt
            target: ``video``, ``image`` or ``audio``
            model: Optional model name the prompt is meant for

        Returns:
            OptimizedPrompt within the target's character limit

        Raises:
            ValidationError: If the prompt is blank or the target unknown
            PromptAssistantError: If the agent fails
        """
        check_request(prompt, target)
        optimized = await self._run(self.build_request(prompt, target, model), target)
        logger.info(f"Optimized {target} prompt: {len(prompt)} -> {len(optimized.prompt)} chars")
        return optimized

    async def variations(
        self,
        prompt: str,
        target: str = "image",
        count: int = 3,
        model: Optional[str] = None,
    ) -> list[OptimizedPrompt]:
        """
        Produce ``count`` alternative rewrites of a prompt, one agent run each.

        Raises:
            ValidationError: If the prompt is blank, the target unknown or
                ``count`` outside 1..MAX_VARIATIONS
            PromptAssistantError: If any run fails
        """
        check_request(prompt, target)
        if not 1 <= count <= MAX_VARIATIONS:
            raise ValidationError("count", f"count must be between 1 and {MAX_VARIATIONS}")

        results = []
        for index in range(1, count + 1):
            logger.info(f"Generating {target} prompt variation {index}/{count}")
            request = self.build_request(prompt, target, model, variation=(index, count))
            results.append(await self._run(request, target))
        return results

    async def _run(self, request: str, target: str) -> OptimizedPrompt:
        agent = self._get_agent()
        try:
            result = await agent.run(request)
        except Exception as e:
            logger.error(f"Prompt optimization failed: {e}")
            raise PromptAssistantError(f"Prompt optimization failed: {e}")

        output = getattr(result, "output", None)
        if output is None or not output.prompt.strip():
            raise PromptAssistantError("Prompt assistant returned an empty prompt")

        return OptimizedPrompt(prompt=fit_to_limit(output.prompt, TARGET_LIMITS[target]), notes=output.notes)


def create_prompt_assistant() -> PromptAssistant:
    """Create a PromptAssistant; the agent is built on first use."""
    return PromptAssistant()

"""Prompt optimizer agent configuration.

Rewrites a user's rough idea into a prompt tuned for a generation model.
"""

import os

from pydantic import BaseModel, Field
from pydantic_ai import Agent

from genstudio.config import get_settings


class OptimizedPrompt(BaseModel):
    """A rewritten generation prompt."""

    prompt: str = Field(min_length=1)
    notes: str = ""


PROMPT_OPTIMIZER_SYSTEM_PROMPT = """
You are a prompt engineer for image, video and music generation models.

Rewrite the user's idea into a single prompt the target model will follow well.

FOR VIDEO:
- Describe the subject, the action, the setting and the camera movement
- Mention lighting, mood and pacing
- Keep one continuous shot; avoid scene cuts

FOR IMAGES:
- Lead with the subject, then composition, style, lighting and color
- Use concrete visual nouns and adjectives, not abstract goals
- For edits of an existing image, state only what should change

FOR MUSIC:
- Name genre, tempo, instrumentation and mood
- Mention structure (intro, build, drop) when it matters

RULES:
- Preserve the user's intent and any named subjects
- Never add text, logos or watermarks the user did not ask for
- Stay within the character limit you are given
- Put the prompt in `prompt` and one short sentence about what you changed in `notes`
"""


def create_prompt_optimizer_agent() -> Agent[None, OptimizedPrompt]:
    """Create the prompt optimizer agent.

    Returns:
        A PydanticAI Agent that returns an OptimizedPrompt.
    """
    settings = get_settings()

    # Set environment variable for pydantic-ai to pick up
    if settings.openai_api_key:
        os.environ["OPENAI_API_KEY"] = settings.openai_api_key

    return Agent(
        settings.prompt_agent_model,
        system_prompt=PROMPT_OPTIMIZER_SYSTEM_PROMPT,
        output_type=OptimizedPrompt,
        retries=2,
    )

"""PydanticAI agent configurations."""

from genstudio.agents.prompt_optimizer import (
    PROMPT_OPTIMIZER_SYSTEM_PROMPT,
    OptimizedPrompt,
    create_prompt_optimizer_agent,
)

__all__ = [
    "PROMPT_OPTIMIZER_SYSTEM_PROMPT",
    "OptimizedPrompt",
    "create_prompt_optimizer_agent",
]

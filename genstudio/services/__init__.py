"""Services for genstudio."""

from genstudio.services.prompt_assistant import (
    PromptAssistant,
    create_prompt_assistant,
    fit_to_limit,
)
from genstudio.services.storage import MediaStore, SavedMedia, create_media_store

__all__ = [
    "MediaStore",
    "SavedMedia",
    "create_media_store",
    "PromptAssistant",
    "create_prompt_assistant",
    "fit_to_limit",
]

"""
LLM layer - upstream client and prompt composition
"""

from collective_chat.llm.client import CompletionClient
from collective_chat.llm.prompts import (
    ComposedPrompt,
    PromptComposer,
    build_history,
    render_system_prompt,
)

__all__ = [
    "CompletionClient",
    "ComposedPrompt",
    "PromptComposer",
    "build_history",
    "render_system_prompt",
]

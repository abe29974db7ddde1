"""
Common utilities shared across StoryWeaver modules.
"""

from .llm import ChatResult, CompletionCallable, call_chat_completion
from .logger import configure_logging, get_logger

__all__ = [
    "ChatResult",
    "CompletionCallable",
    "call_chat_completion",
    "configure_logging",
    "get_logger",
]

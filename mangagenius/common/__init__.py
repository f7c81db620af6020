"""
Common utilities shared across MangaGenius modules.
"""

from .images import ImagePayload, decode_image_payload, strip_data_url_prefix
from .llm import ChatResult, CompletionCallable, call_chat_completion

__all__ = [
    "ChatResult",
    "CompletionCallable",
    "call_chat_completion",
    "ImagePayload",
    "decode_image_payload",
    "strip_data_url_prefix",
]

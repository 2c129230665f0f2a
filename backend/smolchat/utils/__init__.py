"""Utility modules for the application."""

from smolchat.utils.exceptions import (
    DecodeError,
    DocumentRenderError,
    ModelNotLoadedError,
    PromptTooLongError,
    SmolChatError,
    TokenizationError,
    ValidationError,
    VisionProcessError,
)

__all__ = [
    "DecodeError",
    "DocumentRenderError",
    "ModelNotLoadedError",
    "PromptTooLongError",
    "SmolChatError",
    "TokenizationError",
    "ValidationError",
    "VisionProcessError",
]

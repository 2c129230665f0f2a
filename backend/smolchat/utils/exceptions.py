"""Custom exception hierarchy for generation and pipeline errors."""

from __future__ import annotations

from typing import Any, Optional


class SmolChatError(Exception):
    """Base exception for all service errors.

    Attributes:
        message: Human-readable error message
        error_code: Unique error code for programmatic handling
        details: Additional context about the error
    """

    def __init__(
        self,
        message: str,
        error_code: str = "SMOLCHAT_ERROR",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}


class ModelNotLoadedError(SmolChatError):
    """Raised when the model/context pair was never successfully constructed."""

    def __init__(
        self,
        message: str = "LLM model is not loaded or available",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code="MODEL_NOT_LOADED",
            details=details,
        )


class TokenizationError(SmolChatError):
    """Raised when the inference engine's tokenizer rejects a prompt."""

    def __init__(
        self,
        message: str = "Tokenization failed",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code="TOKENIZATION_FAILED",
            details=details,
        )


class PromptTooLongError(SmolChatError):
    """Raised when a tokenized prompt does not fit in the context window."""

    def __init__(
        self,
        n_tokens: int,
        n_ctx: int,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        message = f"Prompt too long: {n_tokens} tokens exceeds context size {n_ctx}"
        if not details:
            details = {}
        details["n_tokens"] = n_tokens
        details["n_ctx"] = n_ctx

        super().__init__(
            message=message,
            error_code="PROMPT_TOO_LONG",
            details=details,
        )
        self.n_tokens = n_tokens
        self.n_ctx = n_ctx


class DecodeError(SmolChatError):
    """Raised when the engine reports a non-zero status decoding the prompt."""

    def __init__(
        self,
        status: int,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        if not details:
            details = {}
        details["status"] = status

        super().__init__(
            message=f"Failed to decode prompt (status {status})",
            error_code="DECODE_FAILED",
            details=details,
        )
        self.status = status


class VisionProcessError(SmolChatError):
    """Raised when the vision subprocess cannot be run or exits abnormally."""

    def __init__(
        self,
        message: str,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        if cause and not details:
            details = {"cause": str(cause), "cause_type": type(cause).__name__}
        elif cause and details:
            details["cause"] = str(cause)
            details["cause_type"] = type(cause).__name__

        super().__init__(
            message=message,
            error_code="VISION_PROCESS_FAILED",
            details=details,
        )
        self.__cause__ = cause


class DocumentRenderError(SmolChatError):
    """Raised when a PDF attachment cannot be rendered to an image."""

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        if path and not details:
            details = {"path": path}
        elif path and details:
            details["path"] = path

        super().__init__(
            message=message,
            error_code="DOCUMENT_RENDER_FAILED",
            details=details,
        )


class ValidationError(SmolChatError):
    """Raised when request validation fails."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        if field and not details:
            details = {"field": field}
        elif field and details:
            details["field"] = field

        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            details=details,
        )

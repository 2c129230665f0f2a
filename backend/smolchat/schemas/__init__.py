"""Request and response models."""

from smolchat.schemas.inbox import (
    AttachmentRef,
    Classification,
    ClassificationRequest,
    ClassificationResponse,
    CVDetectionRequest,
    CVDetectionResponse,
    CVMetadata,
    DraftReply,
    DraftReplyRequest,
    DraftReplyResponse,
)
from smolchat.schemas.persona import PersonaRequest, PersonaResponse

__all__ = [
    "AttachmentRef",
    "CVDetectionRequest",
    "CVDetectionResponse",
    "CVMetadata",
    "Classification",
    "ClassificationRequest",
    "ClassificationResponse",
    "DraftReply",
    "DraftReplyRequest",
    "DraftReplyResponse",
    "PersonaRequest",
    "PersonaResponse",
]

"""Pydantic models for the inbox endpoints (CV detection, draft reply, classification)."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

Category = Literal[
    "Urgent & Action Required",
    "Normal Follow-up",
    "FYI / Low Priority",
    "Spam",
]


class AttachmentRef(BaseModel):
    """Attachment descriptor; entries without a filename are skipped."""

    model_config = ConfigDict(extra="ignore")

    filename: Optional[str] = None


# ============================================================================
# CV detection
# ============================================================================

class CVDetectionRequest(BaseModel):
    email_id: str
    attachments: List[str] = Field(..., description="Attachment filenames in the upload directory")


class CVMetadata(BaseModel):
    """Fields extracted from a CV image."""

    name: str = "Unknown"
    position: str = "Unknown"
    skills: List[str] = Field(default_factory=list)
    experience: str = "Unknown"
    education: str = "Unknown"


class CVDetectionResponse(BaseModel):
    email_id: str
    cv_detected: bool
    metadata: Dict[str, Any] = Field(default_factory=dict)


# ============================================================================
# Draft reply
# ============================================================================

class DraftReplyRequest(BaseModel):
    email_id: str
    subject: str
    body: str
    persona_string: str
    instruction: str = ""
    attachments: List[AttachmentRef] = Field(default_factory=list)


class DraftReply(BaseModel):
    subject: str = "Re: [Subject]"
    draft_reply: str = "Unable to generate reply. Please try again."


class DraftReplyResponse(BaseModel):
    email_id: str
    subject: str
    draft_reply: str


# ============================================================================
# Classification
# ============================================================================

class ClassificationRequest(BaseModel):
    email_id: str
    subject: str
    body: str
    attachments: List[AttachmentRef] = Field(default_factory=list)


class Classification(BaseModel):
    category: Category = "FYI / Low Priority"
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)


class ClassificationResponse(BaseModel):
    email_id: str
    category: Category
    confidence: float

"""Inbox endpoints: CV detection, reply drafting and classification."""

from __future__ import annotations

import logging

from fastapi import APIRouter

from smolchat.api.dependencies import InboxPipelineDep
from smolchat.schemas.inbox import (
    ClassificationRequest,
    ClassificationResponse,
    CVDetectionRequest,
    CVDetectionResponse,
    DraftReplyRequest,
    DraftReplyResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/inbox", tags=["inbox"])


@router.post("/detect-cv", response_model=CVDetectionResponse)
async def detect_cv(payload: CVDetectionRequest, pipeline: InboxPipelineDep) -> CVDetectionResponse:
    """Render PDF attachments and extract CV metadata with the vision model.

    ``cv_detected`` is false, and the vision model is not run, when no PDF
    page could be rendered.
    """
    return await pipeline.detect_cv(payload)


@router.post("/draft-reply", response_model=DraftReplyResponse)
async def draft_reply(payload: DraftReplyRequest, pipeline: InboxPipelineDep) -> DraftReplyResponse:
    """Draft a reply in the sender's persona, optionally following an instruction."""
    return await pipeline.draft_reply(payload)


@router.post("/classify", response_model=ClassificationResponse)
async def classify(payload: ClassificationRequest, pipeline: InboxPipelineDep) -> ClassificationResponse:
    """Classify an email into one of four priority categories."""
    return await pipeline.classify(payload)

"""Request pipelines: prompt -> generation -> extraction -> response."""

from __future__ import annotations

import logging
from typing import Iterable, List

from smolchat.config.settings import Settings
from smolchat.observability.metrics import record_extraction
from smolchat.schemas.inbox import (
    AttachmentRef,
    ClassificationRequest,
    ClassificationResponse,
    CVDetectionRequest,
    CVDetectionResponse,
    DraftReplyRequest,
    DraftReplyResponse,
)
from smolchat.schemas.persona import PersonaRequest, PersonaResponse
from smolchat.services import extraction, prompts
from smolchat.services.documents import AttachmentRenderer, arendered_attachments
from smolchat.services.session import GenerationSession
from smolchat.services.vision import VisionRunner

logger = logging.getLogger(__name__)


def attachment_filenames(attachments: Iterable[AttachmentRef]) -> List[str]:
    """Filenames of the attachment entries that carry one."""
    return [item.filename for item in attachments if item.filename]


def _note_outcome(task: str, result: extraction.Extraction) -> None:
    record_extraction(task, result.is_fallback)
    if result.is_fallback:
        logger.warning("%s extraction fell back to defaults: %s", task, result.reason)


class PersonaPipeline:
    """Generate a persona sentence with the in-process session."""

    def __init__(self, session: GenerationSession, settings: Settings) -> None:
        self._session = session
        self._settings = settings

    async def run(self, request: PersonaRequest) -> PersonaResponse:
        logger.info("Persona request for user %s (%d samples)", request.user_id, len(request.samples))

        prompt = prompts.build_persona_prompt(
            request.name,
            request.position,
            request.department,
            request.language,
            request.samples,
        )
        raw = await self._session.agenerate(prompt, self._settings.persona_max_tokens)
        logger.debug("Raw persona output: %s", raw)

        result = extraction.extract_persona(
            raw,
            name=request.name,
            position=request.position,
            department=request.department,
            language=request.language,
        )
        _note_outcome("persona", result)
        return PersonaResponse(user_id=request.user_id, persona_string=result.value)


class InboxPipeline:
    """CV detection, draft reply and classification through the vision CLI."""

    def __init__(self, settings: Settings, vision: VisionRunner, renderer: AttachmentRenderer) -> None:
        self._settings = settings
        self._vision = vision
        self._renderer = renderer

    async def detect_cv(self, request: CVDetectionRequest) -> CVDetectionResponse:
        logger.info("CV detection for email %s (%d attachments)", request.email_id, len(request.attachments))

        async with arendered_attachments(self._renderer, request.attachments) as images:
            if not images:
                logger.info("No PDF pages rendered for email %s; skipping vision", request.email_id)
                return CVDetectionResponse(email_id=request.email_id, cv_detected=False, metadata={})

            output = await self._vision.arun(
                prompts.build_cv_extraction_prompt(),
                images,
                self._settings.cv_temperature,
                self._settings.cv_max_tokens,
            )

        result = extraction.parse_cv_metadata(output.stdout)
        _note_outcome("cv", result)
        return CVDetectionResponse(
            email_id=request.email_id,
            cv_detected=True,
            metadata=result.value.model_dump(),
        )

    async def draft_reply(self, request: DraftReplyRequest) -> DraftReplyResponse:
        filenames = attachment_filenames(request.attachments)
        logger.info("Draft reply for email %s (%d attachments)", request.email_id, len(filenames))

        async with arendered_attachments(self._renderer, filenames) as images:
            prompt = prompts.build_draft_reply_prompt(
                request.persona_string,
                request.subject,
                request.body,
                request.instruction,
                has_attachments=bool(images),
            )
            output = await self._vision.arun(
                prompt,
                images,
                self._settings.draft_reply_temperature,
                self._settings.draft_reply_max_tokens,
            )

        result = extraction.parse_draft_reply(output.stdout)
        _note_outcome("draft_reply", result)
        return DraftReplyResponse(
            email_id=request.email_id,
            subject=result.value.subject,
            draft_reply=result.value.draft_reply,
        )

    async def classify(self, request: ClassificationRequest) -> ClassificationResponse:
        filenames = attachment_filenames(request.attachments)
        logger.info("Classification for email %s (%d attachments)", request.email_id, len(filenames))

        async with arendered_attachments(self._renderer, filenames) as images:
            prompt = prompts.build_classification_prompt(
                request.subject,
                request.body,
                has_attachments=bool(images),
            )
            output = await self._vision.arun(
                prompt,
                images,
                self._settings.classify_temperature,
                self._settings.classify_max_tokens,
            )

        result = extraction.parse_classification(output.stdout)
        _note_outcome("classify", result)
        return ClassificationResponse(
            email_id=request.email_id,
            category=result.value.category,
            confidence=result.value.confidence,
        )

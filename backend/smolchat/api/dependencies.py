"""Dependency injection for FastAPI endpoints."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import Depends, Request

from smolchat.services.forwarder import PersonaForwarder
from smolchat.services.pipeline import InboxPipeline, PersonaPipeline
from smolchat.utils.exceptions import SmolChatError


def _from_state(request: Request, attribute: str, label: str) -> Any:
    service = getattr(request.app.state, attribute, None)
    if service is None:
        raise SmolChatError(
            f"{label} is not available",
            error_code="SERVICE_UNAVAILABLE",
            details={"service": attribute},
        )
    return service


def get_persona_pipeline(request: Request) -> PersonaPipeline:
    """Get the persona pipeline from application state.

    Raises:
        SmolChatError: If the pipeline was never initialised
    """
    return _from_state(request, "persona_pipeline", "Persona pipeline")


def get_inbox_pipeline(request: Request) -> InboxPipeline:
    """Get the inbox pipeline from application state.

    Raises:
        SmolChatError: If the pipeline was never initialised
    """
    return _from_state(request, "inbox_pipeline", "Inbox pipeline")


def get_persona_forwarder(request: Request) -> PersonaForwarder:
    return _from_state(request, "persona_forwarder", "Persona forwarder")


# Type annotations for cleaner endpoint signatures
PersonaPipelineDep = Annotated[PersonaPipeline, Depends(get_persona_pipeline)]
InboxPipelineDep = Annotated[InboxPipeline, Depends(get_inbox_pipeline)]
PersonaForwarderDep = Annotated[PersonaForwarder, Depends(get_persona_forwarder)]

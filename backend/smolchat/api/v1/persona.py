"""Persona generation endpoint."""

from __future__ import annotations

import logging

from fastapi import APIRouter, BackgroundTasks

from smolchat.api.dependencies import PersonaForwarderDep, PersonaPipelineDep
from smolchat.schemas.persona import PersonaRequest, PersonaResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["persona"])


@router.post("/profile/persona", response_model=PersonaResponse)
async def generate_persona(
    payload: PersonaRequest,
    background_tasks: BackgroundTasks,
    pipeline: PersonaPipelineDep,
    forwarder: PersonaForwarderDep,
) -> PersonaResponse:
    """Generate a one-sentence professional persona from profile fields and writing samples.

    The persona is also forwarded to the downstream profile service after
    the response is sent; forward failures never affect this response.
    """
    response = await pipeline.run(payload)

    if forwarder.enabled:
        background_tasks.add_task(forwarder.forward, response.persona_string)

    return response

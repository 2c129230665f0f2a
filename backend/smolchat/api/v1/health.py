"""Liveness and readiness endpoints."""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class ComponentHealth(BaseModel):
    """Health status for a single component."""

    status: str = Field(..., description="Status: 'healthy' or 'unhealthy'")
    message: str = Field(..., description="Human-readable status message")
    details: Dict[str, Any] = Field(default_factory=dict, description="Additional diagnostic info")


class Readiness(BaseModel):
    """Readiness detail across components."""

    ready: bool
    components: Dict[str, ComponentHealth]
    version: str


def _session_health(request: Request) -> ComponentHealth:
    session = getattr(request.app.state, "session", None)
    if session is None:
        return ComponentHealth(
            status="unhealthy",
            message="Generation session not initialized",
            details={"error": "Session not found in app state"},
        )
    if not session.is_ready:
        return ComponentHealth(
            status="unhealthy",
            message="In-process model not loaded",
            details={"model_loaded": False},
        )
    return ComponentHealth(
        status="healthy",
        message="In-process model loaded",
        details={"model_loaded": True, "n_ctx": session.context_window},
    )


def _vision_health(request: Request) -> ComponentHealth:
    runner = getattr(request.app.state, "vision_runner", None)
    if runner is None:
        return ComponentHealth(
            status="unhealthy",
            message="Vision runner not initialized",
            details={"error": "Runner not found in app state"},
        )
    files = runner.check_files()
    missing = sorted(name for name, present in files.items() if not present)
    if missing:
        return ComponentHealth(
            status="unhealthy",
            message=f"Vision files missing: {', '.join(missing)}",
            details=files,
        )
    return ComponentHealth(status="healthy", message="Vision CLI and models present", details=files)


@router.get("/health", summary="Liveness check")
async def health_check() -> dict[str, str]:
    """Always returns ``{"status": "ok"}`` while the process is serving."""
    return {"status": "ok"}


@router.get("/health/ready", response_model=Readiness, summary="Readiness check")
async def readiness_check(request: Request) -> Readiness:
    """
    Report whether the in-process model is loaded and the vision CLI,
    model and projector files exist.
    """
    components = {
        "session": _session_health(request),
        "vision": _vision_health(request),
    }
    ready = all(component.status == "healthy" for component in components.values())
    if not ready:
        logger.debug("Readiness check failed: %s", {k: v.message for k, v in components.items()})

    settings = getattr(request.app.state, "settings", None)
    return Readiness(
        ready=ready,
        components=components,
        version=settings.api_version if settings is not None else "unknown",
    )

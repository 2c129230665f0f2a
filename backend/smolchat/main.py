"""FastAPI application entrypoint."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from scalar_fastapi import get_scalar_api_reference

from smolchat.api.router import api_router
from smolchat.config.settings import Settings, get_settings
from smolchat.middleware.error_handler import ErrorHandlerMiddleware, request_validation_handler
from smolchat.observability import (
    RequestContextMiddleware,
    configure_logging,
    register_metrics_endpoint,
)
from smolchat.services.documents import AttachmentRenderer
from smolchat.services.forwarder import PersonaForwarder
from smolchat.services.pipeline import InboxPipeline, PersonaPipeline
from smolchat.services.session import GenerationSession
from smolchat.services.vision import VisionRunner

logger = logging.getLogger(__name__)


def _check_vision_version(runner: VisionRunner) -> None:
    for name, present in runner.check_files().items():
        if not present:
            logger.warning("Vision %s file not found; inbox endpoints will fail until it exists", name)

    banner = runner.version()
    if banner:
        logger.info("Vision CLI version: %s", banner.splitlines()[0])


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application startup...")

    settings: Settings = getattr(app.state, "settings", None) or get_settings()

    session = GenerationSession(settings=settings)
    if settings.load_model_on_startup:
        # without the in-process model the persona endpoint cannot work
        await session.startup()
    app.state.session = session

    forwarder = PersonaForwarder(settings=settings)
    await forwarder.startup()
    app.state.persona_forwarder = forwarder

    vision_runner = VisionRunner(settings=settings)
    _check_vision_version(vision_runner)
    app.state.vision_runner = vision_runner

    app.state.persona_pipeline = PersonaPipeline(session=session, settings=settings)
    app.state.inbox_pipeline = InboxPipeline(
        settings=settings,
        vision=vision_runner,
        renderer=AttachmentRenderer.from_settings(settings),
    )

    try:
        yield
    finally:
        logger.info("Application shutdown...")
        app.state.persona_pipeline = None
        app.state.inbox_pipeline = None
        if getattr(app.state, "persona_forwarder", None) is not None:
            await app.state.persona_forwarder.shutdown()
            app.state.persona_forwarder = None
        if getattr(app.state, "session", None) is not None:
            await app.state.session.shutdown()
            app.state.session = None


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    configure_logging(settings)

    docs_url = None if settings.use_scalar_docs else settings.docs_url
    redoc_url = None if settings.use_scalar_docs else "/redoc"

    application = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        lifespan=lifespan,
        docs_url=docs_url,
        redoc_url=redoc_url,
        openapi_url=settings.openapi_url,
        description=(
            "# SmolChat Inbox AI\n\n"
            "Local-model endpoints for an email assistant:\n"
            "- **Persona** - one-sentence professional persona from writing samples\n"
            "- **CV detection** - metadata extraction from PDF attachments\n"
            "- **Draft reply** - persona-aware reply drafting\n"
            "- **Classification** - urgency and priority triage"
        ),
    )
    debug_mode = settings.debug or settings.log_level == "DEBUG"
    application.state.settings = settings
    application.state.debug = debug_mode

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.add_middleware(ErrorHandlerMiddleware, debug=debug_mode)
    application.add_middleware(RequestContextMiddleware, settings=settings)
    application.add_exception_handler(RequestValidationError, request_validation_handler)

    application.include_router(api_router)
    register_metrics_endpoint(application)

    if settings.use_scalar_docs:
        @application.get(settings.docs_url, include_in_schema=False)
        async def scalar_html():
            return get_scalar_api_reference(
                openapi_url=application.openapi_url,
                title=application.title,
            )

    return application


app = create_app()


def run() -> None:
    """Console entry point: serve the application with uvicorn."""
    settings = get_settings()
    uvicorn.run(
        "smolchat.main:app",
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,
    )

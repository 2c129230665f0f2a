"""
Shared pytest fixtures and configuration for the SmolChat backend test suite.

This module provides settings, mock pipelines and collaborators (defined in
``fakes``), test clients, and request payloads used across test modules.
"""

import os
import sys
from pathlib import Path
from typing import Any, Dict

import pytest

# Ensure backend package is importable
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Set test-specific environment variables BEFORE importing app modules
os.environ["LOG_LEVEL"] = "DEBUG"
os.environ["LOAD_MODEL_ON_STARTUP"] = "false"
os.environ["PERSONA_FORWARD_ENABLED"] = "false"

from fastapi import FastAPI
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

from smolchat.config.settings import Settings
from fakes import (
    MockForwarder,
    MockInboxPipeline,
    MockPersonaPipeline,
    MockSession,
    MockVisionRunner,
)


# ============================================================================
# Settings Fixtures
# ============================================================================

@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Create test-specific settings with model loading and forwarding disabled."""
    upload_dir = tmp_path / "uploads"
    upload_dir.mkdir()
    return Settings(
        _env_file=None,  # type: ignore[call-arg]  # Skip .env file
        log_level="DEBUG",
        load_model_on_startup=False,
        llm_repo_id="test/model",
        llm_model_filename="test.gguf",
        persona_forward_enabled=False,
        vision_cli_path=str(tmp_path / "bin" / "llama-mtmd-cli"),
        vision_model_path=str(tmp_path / "models" / "model.gguf"),
        vision_mmproj_path=str(tmp_path / "models" / "mmproj.gguf"),
        upload_dir=str(upload_dir),
        render_dir=str(upload_dir / "temp"),
    )


# ============================================================================
# Service Fixtures
# ============================================================================

@pytest.fixture
def mock_persona_pipeline() -> MockPersonaPipeline:
    return MockPersonaPipeline()


@pytest.fixture
def mock_inbox_pipeline() -> MockInboxPipeline:
    return MockInboxPipeline()


@pytest.fixture
def mock_forwarder() -> MockForwarder:
    return MockForwarder()


@pytest.fixture
def mock_session() -> MockSession:
    return MockSession()


@pytest.fixture
def mock_vision_runner() -> MockVisionRunner:
    return MockVisionRunner()


# ============================================================================
# Application Fixtures
# ============================================================================

@pytest.fixture
def app(
    test_settings: Settings,
    mock_persona_pipeline: MockPersonaPipeline,
    mock_inbox_pipeline: MockInboxPipeline,
    mock_forwarder: MockForwarder,
    mock_session: MockSession,
    mock_vision_runner: MockVisionRunner,
) -> FastAPI:
    """Create a test FastAPI app with mock services."""
    # Import create_app lazily to avoid issues with module-level app creation
    from smolchat.main import create_app

    application = create_app(settings=test_settings)

    # Override services with mocks
    application.state.persona_pipeline = mock_persona_pipeline
    application.state.inbox_pipeline = mock_inbox_pipeline
    application.state.persona_forwarder = mock_forwarder
    application.state.session = mock_session
    application.state.vision_runner = mock_vision_runner

    return application


@pytest.fixture
def test_client(app: FastAPI) -> TestClient:
    """Create a synchronous test client."""
    return TestClient(app)


@pytest.fixture
async def async_client(app: FastAPI):
    """Create an async test client for async endpoint testing."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


# ============================================================================
# Request Payload Helpers
# ============================================================================

@pytest.fixture
def persona_payload() -> Dict[str, Any]:
    return {
        "user_id": "u-1",
        "name": "Ana Silva",
        "position": "Engineer",
        "department": "R&D",
        "language": "English",
        "samples": ["Hi team, shipping today.", "Thanks, will check."],
    }

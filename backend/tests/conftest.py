"""Shared test fixtures and configuration for backend tests."""
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from app.config import AppSettings, ImageKitSecrets, Secrets, get_config, set_config
from app.files.service import FileRelayService, get_file_service, set_file_service
from app.main import app

FIXED_TS = 1718000000000


@pytest.fixture
def api_client():
    """Provide a TestClient for the main FastAPI app.

    Server exceptions are turned into 500 responses instead of being
    re-raised, so the fallback error handler can be asserted on.
    """
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture(autouse=True)
def reset_singletons():
    """Ensure a clean config and service singleton for each test."""
    original_config = get_config()
    original_service = get_file_service()
    set_config(
        AppSettings(
            secrets=Secrets(
                imagekit=ImageKitSecrets(
                    public_key="public_test",
                    private_key="private_test",
                    url_endpoint="https://ik.imagekit.io/demo",
                )
            )
        )
    )
    yield
    set_config(original_config)
    set_file_service(original_service)


@pytest.fixture
def mock_provider() -> MagicMock:
    provider = MagicMock()
    provider.name = "ImageKit"
    provider.upload.return_value = {
        "fileId": "file_abc123",
        "url": "https://ik.imagekit.io/demo/filesync/room1/notes.txt",
        "name": "notes.txt",
    }
    provider.get_details.return_value = {
        "fileId": "file_abc123",
        "name": "notes.txt",
        "size": 12,
        "fileType": "non-image",
    }
    return provider


@pytest.fixture
def mock_service(mock_provider: MagicMock) -> FileRelayService:
    svc = FileRelayService(mock_provider, clock=lambda: FIXED_TS)
    set_file_service(svc)
    return svc

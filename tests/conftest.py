from collections.abc import Iterator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from docqa.config import get_settings
from docqa.main import app


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Iterator[None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
    app.dependency_overrides.clear()


@pytest.fixture
def upload_dir(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    root = tmp_path / "uploads"
    monkeypatch.setenv("DOCQA_UPLOAD_DIR", str(root))
    monkeypatch.setenv("GROQ_API_KEY", "test-key")
    get_settings.cache_clear()
    return root


@pytest.fixture
def client(upload_dir: Path) -> Iterator[TestClient]:
    with TestClient(app) as test_client:
        yield test_client

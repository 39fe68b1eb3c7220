from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from docqa.llm import ChatResult, LLMClientError
from docqa.main import app, get_llm_client
from docqa.services.qa.answer import MODEL_FAILED_ANSWER, NO_DOCUMENTS_ANSWER, NO_RELEVANT_ANSWER

SESSION = {"X-Session-Id": "session_test01"}
REPORT = (
    "The north plant produced 1,200 turbines in 2023 and exported most of them.\n\n"
    "The south plant focuses on gearbox refurbishment for offshore wind farms."
)


class FakeLLMClient:
    def __init__(self) -> None:
        self.prompts: list[str] = []

    def generate_completion(self, prompt: str) -> ChatResult:
        self.prompts.append(prompt)
        return ChatResult(answer="mocked answer", model="fake-model", used_fallback=False)


class FailingLLMClient:
    def generate_completion(self, prompt: str) -> ChatResult:
        raise LLMClientError("simulated failure")


def _upload(client: TestClient, name: str, content: str, headers: dict[str, str] = SESSION):
    return client.post(
        "/api/upload",
        files={"file": (name, content.encode("utf-8"), "text/plain")},
        headers=headers,
    )


def test_health_reports_llm_configuration(client: TestClient) -> None:
    response = client.get("/api/health")

    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "ok"
    assert payload["services"] == {"storage": "operational", "llm": "configured"}
    assert payload["timestamp"]


def test_root_banner(client: TestClient) -> None:
    response = client.get("/")

    assert response.status_code == 200
    assert "/api/health" in response.json()["message"]


def test_cors_allows_configured_frontend_origin(client: TestClient) -> None:
    response = client.get("/api/health", headers={"Origin": "http://localhost:5173"})

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "http://localhost:5173"
    assert response.headers["access-control-allow-credentials"] == "true"


def test_cors_preflight_allows_session_header(client: TestClient) -> None:
    response = client.options(
        "/api/ask",
        headers={
            "Origin": "http://localhost:3000",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "X-Session-Id",
        },
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "http://localhost:3000"


def test_cors_ignores_unknown_origin(client: TestClient) -> None:
    response = client.get("/api/health", headers={"Origin": "https://evil.example"})

    assert response.status_code == 200
    assert "access-control-allow-origin" not in response.headers


def test_upload_list_and_delete_roundtrip(client: TestClient, upload_dir: Path) -> None:
    upload = _upload(client, "report.md", REPORT)

    assert upload.status_code == 201
    document = upload.json()["document"]
    assert upload.json()["message"] == "File uploaded successfully"
    assert document["name"] == "report.md"
    assert document["size"] == len(REPORT.encode("utf-8"))
    assert document["id"].isdigit()
    assert (upload_dir / "session_test01" / f"{document['id']}-report.md").exists()

    listing = client.get("/api/documents", headers=SESSION)
    assert listing.status_code == 200
    assert listing.json() == [document]

    deleted = client.delete(f"/api/documents/{document['id']}", headers=SESSION)
    assert deleted.status_code == 200
    assert deleted.json() == {"message": "Document deleted successfully"}
    assert client.get("/api/documents", headers=SESSION).json() == []


def test_upload_rejects_unsupported_type(client: TestClient) -> None:
    response = _upload(client, "report.pdf", "%PDF-1.7")

    assert response.status_code == 400
    assert "Unsupported file type" in response.json()["detail"]


def test_upload_without_file_is_rejected(client: TestClient) -> None:
    response = client.post("/api/upload", data={"note": "no file"}, headers=SESSION)

    assert response.status_code == 400
    assert response.json()["detail"] == "No file uploaded"


def test_documents_are_scoped_by_session(client: TestClient) -> None:
    _upload(client, "report.md", REPORT)

    other = client.get("/api/documents", headers={"X-Session-Id": "someone_else"})

    assert other.status_code == 200
    assert other.json() == []


def test_delete_unknown_document_returns_404(client: TestClient) -> None:
    kept = _upload(client, "report.md", REPORT).json()["document"]

    response = client.delete("/api/documents/123", headers=SESSION)

    assert response.status_code == 404
    assert response.json()["detail"] == "Document not found"
    assert client.get("/api/documents", headers=SESSION).json() == [kept]


def test_ask_returns_answer_sources_and_meta(client: TestClient) -> None:
    document = _upload(client, "report.md", REPORT).json()["document"]
    fake_client = FakeLLMClient()
    app.dependency_overrides[get_llm_client] = lambda: fake_client

    response = client.post(
        "/api/ask",
        json={"question": "How many turbines did the north plant produce?"},
        headers=SESSION,
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["answer"] == "mocked answer"
    assert payload["sources"][0] == {
        "documentId": document["id"],
        "documentName": "report.md",
        "snippet": REPORT.split("\n\n")[0][:100] + "...",
        "score": 4,
    }
    assert payload["meta"] == {
        "provider": "groq",
        "outcome": "answered",
        "model": "fake-model",
        "retrieved_count": len(payload["sources"]),
    }
    assert len(fake_client.prompts) == 1
    assert "[Source 1 - report.md]:" in fake_client.prompts[0]


def test_ask_honours_target_doc_ids(client: TestClient) -> None:
    _upload(client, "report.md", REPORT)
    fake_client = FakeLLMClient()
    app.dependency_overrides[get_llm_client] = lambda: fake_client

    response = client.post(
        "/api/ask",
        json={"question": "turbines", "targetDocIds": ["not-a-document"]},
        headers=SESSION,
    )

    assert response.status_code == 200
    assert response.json()["answer"] == NO_DOCUMENTS_ANSWER
    assert response.json()["sources"] == []
    assert fake_client.prompts == []


def test_ask_without_relevant_chunks(client: TestClient) -> None:
    _upload(client, "report.md", REPORT)
    fake_client = FakeLLMClient()
    app.dependency_overrides[get_llm_client] = lambda: fake_client

    response = client.post("/api/ask", json={"question": "quarterly dividends"}, headers=SESSION)

    assert response.status_code == 200
    assert response.json()["answer"] == NO_RELEVANT_ANSWER
    assert response.json()["meta"]["outcome"] == "no_relevant_chunks"
    assert fake_client.prompts == []


def test_ask_llm_failure_still_returns_sources(client: TestClient) -> None:
    _upload(client, "report.md", REPORT)
    app.dependency_overrides[get_llm_client] = lambda: FailingLLMClient()

    response = client.post("/api/ask", json={"question": "gearbox refurbishment"}, headers=SESSION)

    assert response.status_code == 200
    payload = response.json()
    assert payload["answer"] == MODEL_FAILED_ANSWER
    assert payload["meta"]["outcome"] == "model_failed"
    assert [source["documentName"] for source in payload["sources"]] == ["report.md"]


@pytest.mark.parametrize(
    ("body", "status_code"),
    [
        ({"q": "missing required field"}, 422),
        ({"question": ""}, 422),
        ({"question": "   "}, 400),
        ({"question": "ok", "unexpected": True}, 422),
        ({"question": "ok", "targetDocIds": "not-a-list"}, 422),
    ],
)
def test_ask_validates_request_body(
    client: TestClient, body: dict[str, object], status_code: int
) -> None:
    app.dependency_overrides[get_llm_client] = lambda: FakeLLMClient()

    response = client.post("/api/ask", json=body, headers=SESSION)

    assert response.status_code == status_code


def test_ask_without_api_key_returns_503(
    client: TestClient,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    from docqa.config import get_settings

    _upload(client, "report.md", REPORT)
    monkeypatch.delenv("GROQ_API_KEY", raising=False)
    get_settings.cache_clear()

    response = client.post("/api/ask", json={"question": "turbines"}, headers=SESSION)

    assert response.status_code == 503
    assert "GROQ_API_KEY" in response.json()["detail"]


def test_ask_unexpected_error_returns_500(client: TestClient) -> None:
    class BrokenLLMClient:
        def generate_completion(self, prompt: str) -> ChatResult:
            raise KeyError("unexpected")

    _upload(client, "report.md", REPORT)
    app.dependency_overrides[get_llm_client] = lambda: BrokenLLMClient()

    response = client.post("/api/ask", json={"question": "turbines"}, headers=SESSION)

    assert response.status_code == 500
    assert response.json()["detail"] == "Internal processing error"


def test_missing_session_header_uses_default_session(client: TestClient, upload_dir: Path) -> None:
    response = _upload(client, "notes.txt", REPORT, headers={})

    assert response.status_code == 201
    assert (upload_dir / "default").is_dir()
    assert len(client.get("/api/documents").json()) == 1

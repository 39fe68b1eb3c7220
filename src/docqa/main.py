from datetime import datetime, timezone
import logging
from pathlib import Path
from typing import Annotated, Any

from fastapi import Depends, FastAPI, File, Header, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from docqa.config import get_settings
from docqa.errors import ModelUnavailableError, NotFoundError, StorageError, ValidationError
from docqa.llm import GroqChatClient, LLMClient
from docqa.logging_config import configure_logging
from docqa.services.qa import AnswerService, DocumentRecord, DocumentStore, FileDocumentStore

logger = logging.getLogger(__name__)

app = FastAPI(title="Private Document QA API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(get_settings().allowed_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

SessionHeader = Annotated[str | None, Header(alias="X-Session-Id")]


class AskRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    question: str = Field(min_length=1)
    target_doc_ids: list[str] | None = Field(default=None, alias="targetDocIds")


@app.on_event("startup")
def startup() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info(
        "api started upload_dir=%s llm_configured=%s allowed_origins=%s",
        settings.upload_dir,
        settings.llm_configured,
        ",".join(settings.allowed_origins),
    )


def get_document_store() -> DocumentStore:
    return FileDocumentStore(Path(get_settings().upload_dir))


def get_llm_client() -> LLMClient | None:
    settings = get_settings()
    if settings.groq_api_key is None:
        return None
    return GroqChatClient(
        base_url=settings.groq_base_url,
        api_key=settings.groq_api_key,
        default_model=settings.groq_model,
        fallback_model=settings.groq_fallback_model,
        timeout_seconds=settings.groq_timeout_seconds,
        temperature=settings.groq_temperature,
        max_tokens=settings.groq_max_tokens,
    )


def _document_summary(document: DocumentRecord) -> dict[str, Any]:
    return {
        "id": document.doc_id,
        "name": document.name,
        "size": document.size,
        "uploadDate": document.upload_date.isoformat(),
    }


@app.get("/")
def root() -> dict[str, str]:
    return {"message": "Private document QA API is live. Use /api/health to check status."}


@app.get("/api/health")
def health() -> dict[str, Any]:
    settings = get_settings()
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": {
            "storage": "operational",
            "llm": "configured" if settings.llm_configured else "missing_api_key",
        },
    }


@app.post("/api/upload")
def upload_document(
    store: Annotated[DocumentStore, Depends(get_document_store)],
    x_session_id: SessionHeader = None,
    file: UploadFile | None = File(default=None),
) -> JSONResponse:
    if file is None or not file.filename:
        raise HTTPException(status_code=400, detail="No file uploaded")

    try:
        document = store.save_document(x_session_id, file.filename, file.file.read())
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except StorageError as exc:
        logger.error("upload failed session=%s error=%s", x_session_id, exc)
        raise HTTPException(status_code=500, detail="Failed to store document") from exc

    return JSONResponse(
        status_code=201,
        content={
            "message": "File uploaded successfully",
            "document": _document_summary(document),
        },
    )


@app.get("/api/documents")
def list_documents(
    store: Annotated[DocumentStore, Depends(get_document_store)],
    x_session_id: SessionHeader = None,
) -> list[dict[str, Any]]:
    return [_document_summary(document) for document in store.list_documents(x_session_id)]


@app.delete("/api/documents/{document_id}")
def delete_document(
    document_id: str,
    store: Annotated[DocumentStore, Depends(get_document_store)],
    x_session_id: SessionHeader = None,
) -> dict[str, str]:
    try:
        store.delete_document(x_session_id, document_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except StorageError as exc:
        logger.error("delete failed session=%s error=%s", x_session_id, exc)
        raise HTTPException(status_code=500, detail="Failed to delete document") from exc

    return {"message": "Document deleted successfully"}


@app.post("/api/ask")
def ask(
    request: AskRequest,
    store: Annotated[DocumentStore, Depends(get_document_store)],
    llm_client: Annotated[LLMClient | None, Depends(get_llm_client)],
    x_session_id: SessionHeader = None,
) -> dict[str, Any]:
    settings = get_settings()
    service = AnswerService(
        store,
        llm_client,
        top_k=settings.qa_top_k,
        min_chunk_chars=settings.qa_min_chunk_chars,
        snippet_chars=settings.qa_snippet_chars,
    )

    try:
        result = service.ask(
            session_id=x_session_id,
            question=request.question,
            target_doc_ids=request.target_doc_ids,
        )
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except ModelUnavailableError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("ask failed session=%s", x_session_id)
        raise HTTPException(status_code=500, detail="Internal processing error") from exc

    return {
        "answer": result.answer,
        "sources": [
            {
                "documentId": source.document_id,
                "documentName": source.document_name,
                "snippet": source.snippet,
                "score": source.score,
            }
            for source in result.sources
        ],
        "meta": {
            "provider": "groq",
            "outcome": result.outcome,
            "model": result.model,
            "retrieved_count": len(result.sources),
        },
    }


def run() -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run("docqa.main:app", host=settings.host, port=settings.port, reload=False)


if __name__ == "__main__":
    run()

from docqa.services.qa.answer import AnswerService
from docqa.services.qa.document_store import DocumentStore, FileDocumentStore
from docqa.services.qa.types import AnswerResult, DocumentRecord, SourceAttribution

__all__ = [
    "AnswerResult",
    "AnswerService",
    "DocumentRecord",
    "DocumentStore",
    "FileDocumentStore",
    "SourceAttribution",
]

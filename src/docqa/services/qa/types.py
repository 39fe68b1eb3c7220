from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Literal

AnswerOutcome = Literal[
    "answered",
    "no_documents",
    "no_relevant_chunks",
    "model_failed",
    "model_timeout",
]


@dataclass(frozen=True)
class DocumentRecord:
    doc_id: str
    name: str
    filename: str
    path: Path
    size: int
    upload_date: datetime


@dataclass(frozen=True)
class Chunk:
    document_id: str
    document_name: str
    text: str


@dataclass(frozen=True)
class ScoredChunk:
    chunk: Chunk
    score: int


@dataclass(frozen=True)
class SourceAttribution:
    document_id: str
    document_name: str
    snippet: str
    score: int


@dataclass(frozen=True)
class AnswerResult:
    question: str
    answer: str
    outcome: AnswerOutcome
    sources: list[SourceAttribution] = field(default_factory=list)
    model: str | None = None

from __future__ import annotations

from collections.abc import Sequence
import logging

from docqa.errors import ModelUnavailableError, ValidationError
from docqa.llm import LLMClient, LLMClientError, LLMTimeoutError
from docqa.services.qa.chunker import DEFAULT_MIN_CHUNK_CHARS, chunk_documents
from docqa.services.qa.document_store import DocumentStore
from docqa.services.qa.prompt import build_prompt
from docqa.services.qa.retriever import DEFAULT_TOP_K, score_chunks, select_top
from docqa.services.qa.types import AnswerResult, Chunk, ScoredChunk, SourceAttribution

logger = logging.getLogger(__name__)

NO_DOCUMENTS_ANSWER = "No documents available for analysis. Please upload files."
NO_RELEVANT_ANSWER = "No relevant information found in the active documents."
MODEL_FAILED_ANSWER = "System Error: Neural Link Unstable. Please try again."
SNIPPET_SUFFIX = "..."
DEFAULT_SNIPPET_CHARS = 100


def make_snippet(text: str, *, max_chars: int = DEFAULT_SNIPPET_CHARS) -> str:
    return text[:max_chars] + SNIPPET_SUFFIX


class AnswerService:
    """Answers one question against the documents of one session.

    Retrieval failures degrade to fixed answers; an LLM failure keeps the
    computed sources and substitutes ``MODEL_FAILED_ANSWER``. Only a blank
    question and a missing LLM client are raised to the caller.
    """

    def __init__(
        self,
        store: DocumentStore,
        llm_client: LLMClient | None,
        *,
        top_k: int = DEFAULT_TOP_K,
        min_chunk_chars: int = DEFAULT_MIN_CHUNK_CHARS,
        snippet_chars: int = DEFAULT_SNIPPET_CHARS,
    ) -> None:
        self._store = store
        self._llm_client = llm_client
        self._top_k = top_k
        self._min_chunk_chars = min_chunk_chars
        self._snippet_chars = snippet_chars

    def ask(
        self,
        *,
        session_id: str | None,
        question: str,
        target_doc_ids: Sequence[str] | None = None,
    ) -> AnswerResult:
        normalized_question = question.strip()
        if not normalized_question:
            raise ValidationError("Question is required")
        if self._llm_client is None:
            raise ModelUnavailableError(
                "AI service not configured. Please set GROQ_API_KEY in the environment."
            )

        chunks = self._collect_chunks(session_id, target_doc_ids)
        if not chunks:
            logger.info("ask short-circuited outcome=no_documents session=%s", session_id)
            return AnswerResult(
                question=normalized_question,
                answer=NO_DOCUMENTS_ANSWER,
                outcome="no_documents",
            )

        top_chunks = select_top(score_chunks(chunks, normalized_question), self._top_k)
        if not top_chunks:
            logger.info(
                "ask short-circuited outcome=no_relevant_chunks session=%s chunks=%d",
                session_id,
                len(chunks),
            )
            return AnswerResult(
                question=normalized_question,
                answer=NO_RELEVANT_ANSWER,
                outcome="no_relevant_chunks",
            )

        sources = [self._to_source(item) for item in top_chunks]
        prompt = build_prompt(question, top_chunks)

        try:
            chat_result = self._llm_client.generate_completion(prompt)
        except LLMTimeoutError as exc:
            logger.warning("llm call timed out session=%s error=%s", session_id, exc)
            return AnswerResult(
                question=normalized_question,
                answer=MODEL_FAILED_ANSWER,
                outcome="model_timeout",
                sources=sources,
            )
        except LLMClientError as exc:
            logger.warning("llm call failed session=%s error=%s", session_id, exc)
            return AnswerResult(
                question=normalized_question,
                answer=MODEL_FAILED_ANSWER,
                outcome="model_failed",
                sources=sources,
            )

        logger.info(
            "ask answered session=%s model=%s used_fallback=%s sources=%d",
            session_id,
            chat_result.model,
            chat_result.used_fallback,
            len(sources),
        )
        return AnswerResult(
            question=normalized_question,
            answer=chat_result.answer,
            outcome="answered",
            sources=sources,
            model=chat_result.model,
        )

    def _collect_chunks(
        self,
        session_id: str | None,
        target_doc_ids: Sequence[str] | None,
    ) -> list[Chunk]:
        documents = self._store.list_documents(session_id)
        if target_doc_ids:
            wanted = set(target_doc_ids)
            documents = [document for document in documents if document.doc_id in wanted]

        return chunk_documents(
            (
                (
                    document.doc_id,
                    document.name,
                    self._store.read_document(session_id, document.doc_id),
                )
                for document in documents
            ),
            min_chars=self._min_chunk_chars,
        )

    def _to_source(self, item: ScoredChunk) -> SourceAttribution:
        return SourceAttribution(
            document_id=item.chunk.document_id,
            document_name=item.chunk.document_name,
            snippet=make_snippet(item.chunk.text, max_chars=self._snippet_chars),
            score=item.score,
        )

"""Grounded prompt assembly.

The question and the chunk texts are embedded verbatim. Nothing is escaped, so
an uploaded document or a question can carry instructions that the model may
follow (prompt injection). Callers that expose the service to untrusted
uploaders should treat answers accordingly.
"""

from __future__ import annotations

from collections.abc import Sequence

from docqa.services.qa.types import ScoredChunk

INSUFFICIENT_CONTEXT_PHRASE = "Insufficient intelligence in current nodes."

PROMPT_TEMPLATE = """ROLE: You are an intelligence analyst for a private document console.
TASK: Answer the user's query using ONLY the context data below.

RULES:
1. NO HALLUCINATIONS: if the answer is not in the context data, reply exactly "{fallback}"
2. ACCURACY: prefer exact numbers, dates and names from the context.
3. FORMATTING:
   - Use **bold** for key figures and entities.
   - Write clean paragraphs. No code blocks unless code is requested.
   - Be direct. No filler such as "Here is the answer".

CONTEXT DATA:
{context}

USER QUERY:
{question}

ANALYSIS:"""


def format_source_block(position: int, item: ScoredChunk) -> str:
    return f"[Source {position} - {item.chunk.document_name}]:\n{item.chunk.text}"


def build_context(top_chunks: Sequence[ScoredChunk]) -> str:
    return "\n\n".join(
        format_source_block(position, item)
        for position, item in enumerate(top_chunks, start=1)
    )


def build_prompt(question: str, top_chunks: Sequence[ScoredChunk]) -> str:
    return PROMPT_TEMPLATE.format(
        fallback=INSUFFICIENT_CONTEXT_PHRASE,
        context=build_context(top_chunks),
        question=question,
    )

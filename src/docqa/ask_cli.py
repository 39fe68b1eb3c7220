from __future__ import annotations

import argparse
from dataclasses import asdict
import json
from pathlib import Path
import sys

from docqa.config import get_settings
from docqa.logging_config import configure_logging
from docqa.main import get_llm_client
from docqa.services.qa import AnswerService, FileDocumentStore


def _build_parser() -> argparse.ArgumentParser:
    settings = get_settings()

    parser = argparse.ArgumentParser(
        prog="docqa-ask",
        description="Answer a question from the documents uploaded to a session",
    )
    parser.add_argument("question", help="Natural-language question")
    parser.add_argument(
        "--session",
        default=None,
        help="Session id whose uploaded documents are searched (default: 'default')",
    )
    parser.add_argument(
        "--doc-id",
        dest="doc_ids",
        action="append",
        default=None,
        help="Restrict retrieval to this document id (repeatable)",
    )
    parser.add_argument(
        "--upload-dir",
        default=settings.upload_dir,
        help="Root directory holding per-session upload folders",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)
    settings = get_settings()
    configure_logging(settings.log_level)

    service = AnswerService(
        FileDocumentStore(Path(args.upload_dir)),
        get_llm_client(),
        top_k=settings.qa_top_k,
        min_chunk_chars=settings.qa_min_chunk_chars,
        snippet_chars=settings.qa_snippet_chars,
    )

    try:
        result = service.ask(
            session_id=args.session,
            question=args.question,
            target_doc_ids=args.doc_ids,
        )
    except Exception as exc:
        print(f"[docqa-ask] failed: {exc}", file=sys.stderr, flush=True)
        raise SystemExit(1) from exc

    print(json.dumps(asdict(result), ensure_ascii=False, indent=2), flush=True)


if __name__ == "__main__":
    main()

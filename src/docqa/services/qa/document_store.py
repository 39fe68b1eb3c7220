from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
import logging
import os
from pathlib import Path
import re
import time
from typing import Protocol

from docqa.errors import NotFoundError, StorageError, ValidationError
from docqa.services.qa.types import DocumentRecord

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = {".txt", ".md"}
DEFAULT_SESSION_ID = "default"
ID_SEPARATOR = "-"

_UNSAFE_SESSION_CHARS = re.compile(r"[^A-Za-z0-9_-]")


class DocumentStore(Protocol):
    def list_documents(self, session_id: str | None) -> list[DocumentRecord]: ...

    def read_document(self, session_id: str | None, document_id: str) -> str: ...

    def save_document(
        self, session_id: str | None, filename: str, content: bytes
    ) -> DocumentRecord: ...

    def delete_document(self, session_id: str | None, document_id: str) -> None: ...


def sanitize_session_id(session_id: str | None) -> str:
    return _UNSAFE_SESSION_CHARS.sub("_", session_id or DEFAULT_SESSION_ID)


def split_stored_filename(filename: str) -> tuple[str, str] | None:
    doc_id, separator, name = filename.partition(ID_SEPARATOR)
    if not separator:
        return None
    return doc_id, name


def _epoch_millis() -> int:
    return int(time.time() * 1000)


class FileDocumentStore:
    """Flat-file document catalog, one directory per session.

    Stored files are named ``<upload-millis>-<original name>``; the prefix is the
    document id and the remainder is the display name. Session directories are
    only created by uploads.
    """

    def __init__(
        self,
        root_dir: Path,
        *,
        supported_extensions: set[str] | None = None,
        clock: Callable[[], int] = _epoch_millis,
    ) -> None:
        self._root_dir = root_dir
        self._extensions = supported_extensions or SUPPORTED_EXTENSIONS
        self._clock = clock

    def session_dir(self, session_id: str | None) -> Path:
        return self._root_dir / sanitize_session_id(session_id)

    def list_documents(self, session_id: str | None) -> list[DocumentRecord]:
        directory = self.session_dir(session_id)
        if not directory.is_dir():
            return []

        try:
            paths = sorted(directory.iterdir())
        except OSError as exc:
            logger.warning("document listing failed session_dir=%s error=%r", directory, exc)
            return []

        documents: list[DocumentRecord] = []
        for path in paths:
            record = self._to_record(path)
            if record is not None:
                documents.append(record)
        return documents

    def read_document(self, session_id: str | None, document_id: str) -> str:
        path = self._find_path(session_id, document_id)
        if path is None:
            logger.warning(
                "document read skipped, not found session=%s document_id=%s",
                sanitize_session_id(session_id),
                document_id,
            )
            return ""

        try:
            return path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            logger.warning("document read failed path=%s error=%r", path, exc)
            return ""

    def save_document(self, session_id: str | None, filename: str, content: bytes) -> DocumentRecord:
        name = Path(filename.replace("\\", "/")).name.strip()
        if not name or name.startswith("."):
            raise ValidationError("File name is required")
        if Path(name).suffix.lower() not in self._extensions:
            raise ValidationError(
                f"Unsupported file type: {name} (supported: {sorted(self._extensions)})"
            )

        directory = self.session_dir(session_id)
        try:
            directory.mkdir(parents=True, exist_ok=True)
            doc_id, tmp_path = self._reserve_document_id(directory)
            target = directory / f"{doc_id}{ID_SEPARATOR}{name}"
            try:
                tmp_path.write_bytes(content)
                os.replace(tmp_path, target)
            finally:
                if tmp_path.exists():
                    tmp_path.unlink()
        except OSError as exc:
            raise StorageError(f"Failed to store document {name}: {exc}") from exc

        record = self._to_record(target)
        if record is None:
            raise StorageError(f"Stored document is not readable: {target}")

        logger.info(
            "document stored session=%s document_id=%s name=%s size=%d",
            directory.name,
            record.doc_id,
            record.name,
            record.size,
        )
        return record

    def delete_document(self, session_id: str | None, document_id: str) -> None:
        path = self._find_path(session_id, document_id)
        if path is None:
            raise NotFoundError("Document not found")

        try:
            path.unlink()
        except FileNotFoundError as exc:
            raise NotFoundError("Document not found") from exc
        except OSError as exc:
            raise StorageError(f"Failed to delete document {document_id}: {exc}") from exc

        logger.info(
            "document deleted session=%s document_id=%s",
            sanitize_session_id(session_id),
            document_id,
        )

    def _find_path(self, session_id: str | None, document_id: str) -> Path | None:
        for document in self.list_documents(session_id):
            if document.doc_id == document_id:
                return document.path
        return None

    def _reserve_document_id(self, directory: Path) -> tuple[str, Path]:
        """Claim an unused id by exclusively creating its hidden upload file.

        The upload file only disappears when ``os.replace`` turns it into the
        stored document, so at any moment one of the two names holds the id.
        """
        candidate = self._clock()
        while True:
            doc_id = str(candidate)
            tmp_path = directory / f".{doc_id}.upload"
            if doc_id not in self._stored_ids(directory):
                try:
                    fd = os.open(tmp_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
                except FileExistsError:
                    pass
                else:
                    os.close(fd)
                    # A concurrent upload may have finished with this id before we claimed it.
                    if doc_id not in self._stored_ids(directory):
                        return doc_id, tmp_path
                    tmp_path.unlink()
            candidate += 1

    def _stored_ids(self, directory: Path) -> set[str]:
        ids: set[str] = set()
        for path in directory.iterdir():
            if path.name.startswith("."):
                continue
            parts = split_stored_filename(path.name)
            if parts is not None:
                ids.add(parts[0])
        return ids

    def _to_record(self, path: Path) -> DocumentRecord | None:
        if path.name.startswith("."):
            return None
        parts = split_stored_filename(path.name)
        if parts is None or not parts[0]:
            return None

        try:
            if not path.is_file():
                return None
            stats = path.stat()
        except OSError as exc:
            logger.warning("document stat failed path=%s error=%r", path, exc)
            return None

        doc_id, name = parts
        return DocumentRecord(
            doc_id=doc_id,
            name=name,
            filename=path.name,
            path=path,
            size=stats.st_size,
            upload_date=datetime.fromtimestamp(stats.st_mtime, tz=timezone.utc),
        )

"""
Teamwork Document Service — Upload, search, export, and removal of shared files.

Handles:
- Size cap per file (300 KiB by default; storage quota is small)
- Payload encoding to a ``data:<mime>;base64,<payload>`` blob
- Sequential batch upload: a failing file is reported and skipped
- Title search, newest first
- Export (download) of the decoded payload to disk
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import mimetypes
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Protocol, Tuple, runtime_checkable

from teamwork.engine.errors import (
    TeamworkError,
    TeamworkExternalFetchFailed,
    TeamworkFileTooLarge,
    TeamworkQuotaExceeded,
    TeamworkRecordNotFound,
    TeamworkValidationError,
)
from teamwork.engine.events import ChangeEvent, ChangeNotifier
from teamwork.prompts import ConfirmationPrompt, DenyConfirm, MemberSelector
from teamwork.records.models import Collection, Document, Member
from teamwork.records.store import Store

logger = logging.getLogger("teamwork.services.documents")

MAX_FILE_SIZE = 300 * 1024


# ---------------------------------------------------------------------------
# Upload sources and encoding
# ---------------------------------------------------------------------------

@dataclass
class FileUpload:
    """A file offered for upload, either on disk or already in memory."""

    name: str
    size: int
    content_type: str = "application/octet-stream"
    path: Optional[Path] = None
    content: Optional[bytes] = None

    @classmethod
    def from_path(cls, path: str | Path) -> "FileUpload":
        p = Path(path)
        return cls(
            name=p.name,
            size=p.stat().st_size,
            content_type=detect_mime_type(p.name),
            path=p,
        )

    @classmethod
    def from_bytes(cls, name: str, content: bytes, content_type: Optional[str] = None) -> "FileUpload":
        return cls(
            name=name,
            size=len(content),
            content_type=content_type or detect_mime_type(name),
            content=content,
        )

    async def read(self) -> bytes:
        if self.content is not None:
            return self.content
        if self.path is None:
            raise OSError(f"No content or path for '{self.name}'")
        return await asyncio.to_thread(self.path.read_bytes)


@runtime_checkable
class FileEncoder(Protocol):
    async def encode(self, upload: FileUpload) -> str:
        """Return the encoded text blob. Raises on failure."""
        ...


class DataUrlEncoder:
    """Encodes the raw bytes as a base64 data URL."""

    async def encode(self, upload: FileUpload) -> str:
        raw = await upload.read()
        payload = base64.b64encode(raw).decode("ascii")
        return f"data:{upload.content_type};base64,{payload}"


def decode_data_url(data: str) -> Tuple[str, bytes]:
    """Split a base64 data URL into (mime type, raw bytes)."""
    if not data.startswith("data:") or "," not in data:
        raise TeamworkValidationError("Document payload is not a data URL")
    header, _, payload = data.partition(",")
    meta = header[len("data:"):]
    if not meta.endswith(";base64"):
        raise TeamworkValidationError("Only base64 data URLs are supported")
    mime = meta[: -len(";base64")] or "application/octet-stream"
    try:
        return mime, base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise TeamworkValidationError(f"Corrupt document payload: {e}") from e


def detect_mime_type(filename: str) -> str:
    mime, _ = mimetypes.guess_type(filename)
    return mime or "application/octet-stream"


def format_size(size_bytes: int) -> str:
    """Human-readable size: bytes below 1 KB, then KB / MB with one decimal."""
    if size_bytes < 1024:
        return f"{size_bytes} bytes"
    if size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    return f"{size_bytes / (1024 * 1024):.1f} MB"


def _safe_filename(filename: str) -> str:
    """Strip path components and characters unsafe on common filesystems."""
    name = os.path.basename(filename)
    name = "".join(c for c in name if c.isprintable() and c not in '<>:"/\\|?*')
    name = name.lstrip(".")
    return name or "unnamed_document"


# ---------------------------------------------------------------------------
# Batch results
# ---------------------------------------------------------------------------

@dataclass
class UploadFailure:
    file_name: str
    error: TeamworkError

    @property
    def message(self) -> str:
        return f"{self.file_name}: {self.error.message}"


@dataclass
class UploadReport:
    uploader: Optional[str] = None
    uploaded: List[Document] = field(default_factory=list)
    failed: List[UploadFailure] = field(default_factory=list)
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return not self.cancelled and not self.failed


def search_documents(documents: List[Document], term: str = "") -> List[Document]:
    """Case-insensitive title match, most recently added first."""
    needle = term.lower()
    return [d for d in reversed(documents) if needle in d.title.lower()]


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class DocumentService:
    """Document operations over the shared Store."""

    def __init__(
        self,
        store: Store,
        notifier: ChangeNotifier,
        selector: Optional[MemberSelector] = None,
        confirmer: Optional[ConfirmationPrompt] = None,
        encoder: Optional[FileEncoder] = None,
        max_upload_bytes: int = MAX_FILE_SIZE,
    ):
        self._store = store
        self._notifier = notifier
        self.selector = selector
        self.confirmer = confirmer or DenyConfirm()
        self._encoder = encoder or DataUrlEncoder()
        self._max_upload_bytes = max_upload_bytes

    @property
    def max_upload_bytes(self) -> int:
        return self._max_upload_bytes

    def _notify(self, operation: str, document_id: str) -> None:
        self._notifier.fire(ChangeEvent.DATA_CHANGED, {
            "collection": Collection.DOCUMENTS,
            "operation": operation,
            "record_id": document_id,
        })

    # -- reads --

    def list(self) -> List[Document]:
        return self._store.get(Collection.DOCUMENTS)  # type: ignore[return-value]

    def get(self, document_id: str) -> Optional[Document]:
        return self._store.find(Collection.DOCUMENTS, document_id)  # type: ignore[return-value]

    def search(self, term: str = "") -> List[Document]:
        return search_documents(self.list(), term)

    # -- uploads --

    def validate_upload(self, upload: FileUpload) -> None:
        if upload.size > self._max_upload_bytes:
            raise TeamworkFileTooLarge(
                f"File too large ({format_size(upload.size)}, "
                f"limit {format_size(self._max_upload_bytes)})",
                collection=Collection.DOCUMENTS,
                operation="upload",
                file_name=upload.name,
                size_bytes=upload.size,
                limit_bytes=self._max_upload_bytes,
            )

    async def upload(self, upload: FileUpload, uploader: str) -> Document:
        """
        Encode and store one file.

        Raises:
            TeamworkFileTooLarge: above the size cap; nothing is written.
            TeamworkExternalFetchFailed: the encoder could not read/encode the file.
            TeamworkQuotaExceeded: storage is full; nothing is written.
        """
        self.validate_upload(upload)

        try:
            encoded = await self._encoder.encode(upload)
        except TeamworkError:
            raise
        except Exception as e:
            raise TeamworkExternalFetchFailed(
                f"Could not read file ({e})",
                source="file_encoder",
                file_name=upload.name,
            ) from e

        doc: Document = self._store.add(Collection.DOCUMENTS, {  # type: ignore[assignment]
            "title": upload.name,
            "file_name": upload.name,
            "file_type": upload.content_type,
            "size": upload.size,
            "uploaded_by": uploader,
            "data": encoded,
        })
        logger.info(f"Uploaded: {doc.file_name} ({doc.size} bytes) by {uploader}")
        self._notify("create", doc.id)
        return doc

    async def upload_batch(
        self,
        uploads: List[FileUpload],
        uploader: Optional[str] = None,
    ) -> UploadReport:
        """
        Upload files one after another under a single uploader.

        The uploader is asked for once when not given; no choice cancels the
        whole batch. Per-file failures are collected and the batch continues.
        """
        if not uploads:
            return UploadReport(uploader=uploader)

        if uploader is None and self.selector is not None:
            members: List[Member] = self._store.get(Collection.MEMBERS)  # type: ignore[assignment]
            uploader = self.selector.select("Choose the member uploading these files", members)
        if not uploader:
            logger.info("Upload cancelled: no uploader chosen")
            return UploadReport(cancelled=True)

        report = UploadReport(uploader=uploader)
        for upload in uploads:
            try:
                report.uploaded.append(await self.upload(upload, uploader))
            except (
                TeamworkFileTooLarge,
                TeamworkExternalFetchFailed,
                TeamworkQuotaExceeded,
                TeamworkValidationError,
            ) as e:
                logger.warning(f"Upload failed for {upload.name}: {e.message}")
                report.failed.append(UploadFailure(file_name=upload.name, error=e))
        return report

    # -- removal / export --

    def remove(self, document_id: str) -> bool:
        """Delete after confirmation. False when cancelled or not found."""
        if not self.confirmer.confirm("Delete this document?"):
            logger.info(f"Document delete cancelled: {document_id}")
            return False
        if not self._store.delete(Collection.DOCUMENTS, document_id):
            return False
        self._notify("delete", document_id)
        return True

    def export(self, document_id: str, destination: str | Path) -> Path:
        """
        Write the decoded payload to ``destination``.

        A directory destination receives the document under its file name.
        """
        doc = self.get(document_id)
        if doc is None:
            raise TeamworkRecordNotFound(
                f"No document with id '{document_id}'",
                collection=Collection.DOCUMENTS,
                record_id=document_id,
                operation="export",
            )

        _, raw = decode_data_url(doc.data)
        target = Path(destination)
        if target.is_dir():
            target = target / _safe_filename(doc.file_name)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(raw)
        logger.info(f"Exported {doc.file_name} → {target}")
        return target

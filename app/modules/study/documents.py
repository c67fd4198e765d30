"""Uploaded PDF handling: validation, single-file contract and data-URL codec.

Files travel to the gateway as ``{name, type, data}`` entries where ``data``
is a base64 ``data:`` URL, the same shape a browser ``FileReader`` produces.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from typing import Iterable, Sequence

from pydantic import BaseModel, Field

from app.modules.study.errors import DocumentRejected

PDF_MIME_TYPE = "application/pdf"
MAX_DOCUMENT_BYTES = 5 * 1024 * 1024
REJECTED_NOTICE = "Only PDF files under 5MB are allowed."
MULTIPLE_FILES_NOTICE = "Please upload a single PDF at a time."


@dataclass(frozen=True)
class UploadedDocument:
    name: str
    mime_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


class EncodedFile(BaseModel):
    """Wire representation of one uploaded file."""

    name: str
    type: str = Field(description="Declared MIME type")
    data: str = Field(description="base64 data URL of the file contents")

    @classmethod
    def from_document(cls, doc: UploadedDocument) -> "EncodedFile":
        return cls(name=doc.name, type=doc.mime_type, data=encode_data_url(doc))

    def to_document(self) -> UploadedDocument:
        mime, payload = decode_data_url(self.data)
        # The declared type wins; the data URL prefix is informational.
        return UploadedDocument(name=self.name, mime_type=self.type or mime, data=payload)


def encode_data_url(doc: UploadedDocument) -> str:
    payload = base64.b64encode(doc.data).decode("ascii")
    return f"data:{doc.mime_type};base64,{payload}"


def decode_data_url(url: str) -> tuple[str, bytes]:
    """Split a base64 data URL into ``(mime_type, bytes)``."""
    if not url.startswith("data:") or "," not in url:
        raise DocumentRejected("File data is not a data URL", reason="encoding")
    header, payload = url[5:].split(",", 1)
    parts = header.split(";")
    if "base64" not in parts[1:]:
        raise DocumentRejected("File data must be base64 encoded", reason="encoding")
    try:
        raw = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DocumentRejected(f"File data is not valid base64: {e}", reason="encoding")
    return parts[0], raw


def validate_document(
    doc: UploadedDocument, *, max_bytes: int = MAX_DOCUMENT_BYTES
) -> UploadedDocument:
    if doc.mime_type != PDF_MIME_TYPE:
        raise DocumentRejected(
            f"{doc.name}: expected {PDF_MIME_TYPE}, got {doc.mime_type or 'unknown'}",
            reason="mime",
        )
    if doc.size > max_bytes:
        raise DocumentRejected(
            f"{doc.name}: {doc.size} bytes exceeds the {max_bytes} byte limit",
            reason="size",
        )
    return doc


def filter_documents(
    candidates: Iterable[UploadedDocument], *, max_bytes: int = MAX_DOCUMENT_BYTES
) -> tuple[list[UploadedDocument], list[UploadedDocument]]:
    """Partition files into ``(accepted, rejected)``."""
    accepted: list[UploadedDocument] = []
    rejected: list[UploadedDocument] = []
    for doc in candidates:
        try:
            accepted.append(validate_document(doc, max_bytes=max_bytes))
        except DocumentRejected:
            rejected.append(doc)
    return accepted, rejected


def choose_single(docs: Sequence[UploadedDocument]) -> UploadedDocument:
    """Enforce the one-document-per-session contract."""
    if not docs:
        raise DocumentRejected("No PDF selected", reason="empty")
    if len(docs) > 1:
        raise DocumentRejected(MULTIPLE_FILES_NOTICE, reason="multiple")
    return docs[0]

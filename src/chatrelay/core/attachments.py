"""Attachment extraction: uploaded files to prompt fragments.

Every attachment yields exactly one textual fragment, in input order.
Image attachments additionally yield an ``InlineImage`` for backends
that accept binary parts.  Failures are reported inside the fragment;
nothing here raises past ``extract_attachments``.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from chatrelay.infra.pdf_utils import extract_text_from_pdf, sanitize_text

from .metrics import ATTACHMENTS_TOTAL
from .models import Attachment, InlineImage

logger = logging.getLogger(__name__)

PDF_TEXT_LIMIT = 5000

KIND_TEXT = "text"
KIND_IMAGE = "image"
KIND_PDF = "pdf"
KIND_OTHER = "other"

TEXT_MIME_TYPES = frozenset({"application/json"})
TEXT_SUFFIXES = (".md", ".txt")
PDF_MIME_TYPE = "application/pdf"
PDF_SUFFIX = ".pdf"

FILE_HEADER = "=== File: {filename} ==="
PDF_HEADER = "=== PDF file: {filename} ==="
FILE_FOOTER = "=== End of file ==="

PDF_NO_TEXT_HINT = (
    "(This PDF contains no extractable text; it is probably image-based or "
    "scanned. Convert it to a text-selectable PDF, or send its pages as images "
    "to a Gemini model.)"
)


@dataclass
class ExtractedAttachments:
    """Fragments to splice into the prompt plus pass-through images."""

    fragments: list[str] = field(default_factory=list)
    images: list[InlineImage] = field(default_factory=list)


class AttachmentDecodeError(ValueError):
    """The payload is not valid base64."""


def classify(attachment: Attachment) -> str:
    """Return the attachment kind from its declared type and file name."""
    mime = (attachment.mime_type or "").lower()
    name = attachment.filename.lower()
    if mime.startswith("text/") or mime in TEXT_MIME_TYPES or name.endswith(TEXT_SUFFIXES):
        return KIND_TEXT
    if mime.startswith("image/"):
        return KIND_IMAGE
    if mime == PDF_MIME_TYPE or name.endswith(PDF_SUFFIX):
        return KIND_PDF
    return KIND_OTHER


def strip_data_url(payload: str) -> str:
    """Drop a ``data:<mime>;base64,`` prefix when present."""
    if payload.startswith("data:") and "," in payload:
        return payload.split(",", 1)[1]
    return payload


def decode_payload(payload: str) -> bytes:
    data = strip_data_url(payload).strip()
    if not data:
        raise AttachmentDecodeError("empty payload")
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise AttachmentDecodeError(f"invalid base64 data ({exc})") from exc


def text_fragment(attachment: Attachment) -> str:
    return (
        f"{FILE_HEADER.format(filename=attachment.filename)}\n"
        f"Type: {attachment.mime_type or 'unknown'}\n"
        f"Content:\n{attachment.payload}\n"
        f"{FILE_FOOTER}"
    )


def image_fragment(attachment: Attachment) -> str:
    return f"[Image file: {attachment.filename}]"


def other_fragment(attachment: Attachment) -> str:
    return f"[File: {attachment.filename} (type: {attachment.mime_type or 'unknown'})]"


def pdf_error_fragment(attachment: Attachment, reason: str) -> str:
    return f"(Failed to read PDF {attachment.filename}: {reason})"


def pdf_text_fragment(filename: str, text: str, limit: int = PDF_TEXT_LIMIT) -> str:
    """Wrap sanitized PDF text, truncating past *limit* characters."""
    body = text[:limit]
    lines = [
        PDF_HEADER.format(filename=filename),
        f"Content ({len(text)} characters):",
        body,
    ]
    if len(text) > limit:
        lines.append(f"... ({len(text) - limit} characters omitted) ...")
    lines.append(FILE_FOOTER)
    return "\n".join(lines)


async def pdf_fragment(attachment: Attachment, limit: int = PDF_TEXT_LIMIT) -> str:
    """Decode and extract a PDF attachment; failures become the fragment."""
    try:
        raw = decode_payload(attachment.payload)
        # pymupdf is CPU-bound; keep the event loop free.
        text = await asyncio.to_thread(extract_text_from_pdf, raw)
    except Exception as exc:
        logger.warning(
            "PDF extraction failed for %s: %s", attachment.filename, exc
        )
        ATTACHMENTS_TOTAL.labels(kind=KIND_PDF, outcome="error").inc()
        return pdf_error_fragment(attachment, str(exc) or type(exc).__name__)

    text = sanitize_text(text)
    if not text:
        ATTACHMENTS_TOTAL.labels(kind=KIND_PDF, outcome="empty").inc()
        return PDF_NO_TEXT_HINT

    logger.info(
        "Extracted %d characters from PDF %s", len(text), attachment.filename
    )
    ATTACHMENTS_TOTAL.labels(kind=KIND_PDF, outcome="ok").inc()
    return pdf_text_fragment(attachment.filename, text, limit)


async def extract_attachments(
    attachments: Sequence[Attachment],
    *,
    pdf_text_limit: int = PDF_TEXT_LIMIT,
) -> ExtractedAttachments:
    """Convert *attachments* into ordered prompt fragments."""
    result = ExtractedAttachments()
    for attachment in attachments:
        kind = classify(attachment)
        logger.debug(
            "Processing attachment %s (declared=%s, kind=%s)",
            attachment.filename,
            attachment.mime_type,
            kind,
        )
        if kind == KIND_TEXT:
            result.fragments.append(text_fragment(attachment))
            ATTACHMENTS_TOTAL.labels(kind=kind, outcome="ok").inc()
        elif kind == KIND_IMAGE:
            result.fragments.append(image_fragment(attachment))
            data = strip_data_url(attachment.payload).strip()
            if data:
                result.images.append(
                    InlineImage(
                        filename=attachment.filename,
                        mime_type=attachment.mime_type or "image/png",
                        data=data,
                    )
                )
            ATTACHMENTS_TOTAL.labels(kind=kind, outcome="ok" if data else "empty").inc()
        elif kind == KIND_PDF:
            result.fragments.append(await pdf_fragment(attachment, pdf_text_limit))
        else:
            result.fragments.append(other_fragment(attachment))
            ATTACHMENTS_TOTAL.labels(kind=kind, outcome="placeholder").inc()
    return result

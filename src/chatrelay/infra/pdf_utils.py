"""PDF utilities.

Pure infra, no domain imports.
"""

from __future__ import annotations

import re

_PDF_FILETYPE = "pdf"

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
_WHITESPACE_RUN = re.compile(r"\s+")


def extract_text_from_pdf(data: bytes) -> str:
    """Extract readable text from raw PDF bytes using pymupdf."""
    import pymupdf  # lazy, only needed when a PDF is attached

    parts: list[str] = []
    with pymupdf.open(stream=data, filetype=_PDF_FILETYPE) as doc:
        for page in doc:
            parts.append(page.get_text())
    return "\n".join(parts)


def sanitize_text(text: str) -> str:
    """Strip control characters and collapse whitespace runs to one space."""
    text = _CONTROL_CHARS.sub("", text)
    return _WHITESPACE_RUN.sub(" ", text).strip()

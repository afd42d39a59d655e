"""
Source text extraction for tutor-uploaded files.

Best effort: PDFs are read with PyMuPDF, anything else as UTF-8 text.
Failures are logged and yield None so authoring can continue without the
file's content.
"""

from __future__ import annotations

from pathlib import Path

import fitz
from loguru import logger

# Longest excerpt passed on to the generator.
MAX_SOURCE_CHARS = 20_000


def extract_text(path: str | Path) -> str | None:
    """Return the file's text, or None when nothing usable could be read."""
    path = Path(path)
    try:
        if path.suffix.lower() == ".pdf":
            with fitz.open(str(path)) as doc:
                text = "\n".join(page.get_text() for page in doc)
        else:
            text = path.read_text(encoding="utf-8")
    except Exception as e:
        logger.warning(f"Could not extract text from {path}: {e}")
        return None

    text = text.strip()
    if not text:
        logger.warning(f"No text found in {path}")
        return None
    return text[:MAX_SOURCE_CHARS]

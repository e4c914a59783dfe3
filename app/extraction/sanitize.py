from __future__ import annotations

import re
import unicodedata

from app.core.config.extraction import get_extraction_value

DEFAULT_TRUNCATION_MARKER = "... [contenido truncado]"
DEFAULT_MAX_TEXT_LENGTH = 1_000_000

_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_NON_PRINTABLE_RE = re.compile(r"[^\x20-\x7e\n\r\t\u00c0-\u017f]")

_TYPOGRAPHY_MAP = str.maketrans(
    {
        "\u2010": "-",
        "\u2011": "-",
        "\u2012": "-",
        "\u2013": "-",
        "\u2014": "-",
        "\u2018": "'",
        "\u2019": "'",
        "\u201c": '"',
        "\u201d": '"',
        "\u2022": "-",
        "\u25cf": "-",
        "\u25aa": "-",
        "\u00a0": " ",
        "\u2026": "...",
    }
)


def truncation_marker() -> str:
    configured = get_extraction_value("limits.truncation_marker")
    return str(configured) if configured else DEFAULT_TRUNCATION_MARKER


def sanitize(text: str | None) -> str:
    if not text:
        return ""
    cleaned = unicodedata.normalize("NFC", text)
    cleaned = _CONTROL_CHARS_RE.sub("", cleaned)
    cleaned = cleaned.translate(_TYPOGRAPHY_MAP)
    cleaned = _NON_PRINTABLE_RE.sub("", cleaned)
    return cleaned.strip()


def truncate(text: str | None, max_length: int = DEFAULT_MAX_TEXT_LENGTH) -> str:
    content = text or ""
    if max_length < 0:
        max_length = 0
    if len(content) <= max_length:
        return content
    return content[:max_length] + truncation_marker()


def process_content_safely(
    text: str | None,
    *,
    sanitize_content: bool = True,
    truncate_content: bool = True,
    max_length: int | None = None,
) -> str:
    processed = text or ""
    if sanitize_content:
        processed = sanitize(processed)
    if truncate_content:
        processed = truncate(processed, DEFAULT_MAX_TEXT_LENGTH if max_length is None else max_length)
    return processed

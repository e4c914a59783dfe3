from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass
from io import BytesIO
from typing import Any, Sequence

from pypdf import PdfReader

from app.extraction.errors import PdfParseError
from app.extraction.models import SourceFile
from app.extraction.observability import ExtractionLogger, NullExtractionLogger

DEFAULT_PDF_TIMEOUT_S = 30.0
DEFAULT_LINE_THRESHOLD = 5.0

_HORIZONTAL_WS_RE = re.compile(r"[ \t\f\v]+")
_TRAILING_WS_RE = re.compile(r"[ \t]+\n")
_BLANK_RUN_RE = re.compile(r"\n{3,}")


@dataclass(frozen=True)
class PdfText:
    text: str
    page_count: int


def normalize_pdf_whitespace(text: str) -> str:
    value = text.replace("\r\n", "\n").replace("\r", "\n")
    value = _HORIZONTAL_WS_RE.sub(" ", value)
    value = _TRAILING_WS_RE.sub("\n", value)
    value = _BLANK_RUN_RE.sub("\n\n", value)
    return value.strip()


def _y_position(cm: Sequence[Any], tm: Sequence[Any]) -> float:
    # Vertical component of the text matrix mapped through the current transformation matrix.
    try:
        return float(tm[4]) * float(cm[1]) + float(tm[5]) * float(cm[3]) + float(cm[5])
    except (TypeError, ValueError, IndexError):
        return 0.0


def join_text_runs(runs: Sequence[tuple[str, float]], line_threshold: float = DEFAULT_LINE_THRESHOLD) -> str:
    """Concatenate positioned text fragments, breaking lines on vertical jumps."""
    parts: list[str] = []
    last_y: float | None = None
    for text, y in runs:
        if not text:
            continue
        if parts and last_y is not None:
            previous = parts[-1]
            if abs(y - last_y) > line_threshold:
                if not previous.endswith("\n") and not text.startswith("\n"):
                    parts.append("\n")
            elif not previous[-1:].isspace() and not text[:1].isspace():
                parts.append(" ")
        parts.append(text)
        last_y = y
    return "".join(parts)


def _page_text(page: Any, line_threshold: float) -> str:
    runs: list[tuple[str, float]] = []

    def visitor(text: str, cm: Sequence[Any], tm: Sequence[Any], font_dict: Any, font_size: Any) -> None:
        if text:
            runs.append((text, _y_position(cm, tm)))

    plain = page.extract_text(visitor_text=visitor) or ""
    if runs:
        return join_text_runs(runs, line_threshold)
    return plain


def parse_pdf_bytes(
    content: bytes,
    *,
    line_threshold: float = DEFAULT_LINE_THRESHOLD,
    logger: ExtractionLogger | None = None,
) -> PdfText:
    log = logger or NullExtractionLogger()
    try:
        reader = PdfReader(BytesIO(content))
        if reader.is_encrypted:
            try:
                reader.decrypt("")
            except Exception as exc:
                raise PdfParseError(f"PDF is encrypted and cannot be opened: {exc}") from exc
        pages = list(reader.pages)
    except PdfParseError:
        raise
    except Exception as exc:
        raise PdfParseError(f"Unable to load PDF document: {exc}") from exc

    log.info("pdf_client_loaded", pages=len(pages))
    chunks: list[str] = []
    for index, page in enumerate(pages, start=1):
        try:
            page_text = _page_text(page, line_threshold)
        except Exception as exc:  # noqa: BLE001 - skip the page
            log.warning("pdf_client_page_failed", page=index, error=exc)
            continue
        if page_text.strip():
            chunks.append(page_text)
        log.info("pdf_client_page_processed", page=index, characters=len(page_text))

    text = normalize_pdf_whitespace("\n".join(chunks))
    if not text:
        raise PdfParseError("PDF contains no extractable text (scanned or image-only document).")
    return PdfText(text=text, page_count=len(pages))


async def extract_pdf_text(
    file: SourceFile,
    *,
    timeout_s: float = DEFAULT_PDF_TIMEOUT_S,
    line_threshold: float = DEFAULT_LINE_THRESHOLD,
    logger: ExtractionLogger | None = None,
) -> PdfText:
    try:
        return await asyncio.wait_for(
            asyncio.to_thread(parse_pdf_bytes, file.content, line_threshold=line_threshold, logger=logger),
            timeout=timeout_s,
        )
    except asyncio.TimeoutError as exc:
        raise PdfParseError(f"PDF parsing timed out after {timeout_s:g}s.") from exc

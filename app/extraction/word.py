from __future__ import annotations

import re
from io import BytesIO
from zipfile import BadZipFile, ZipFile

import defusedxml.ElementTree as ET
from docx import Document

from app.core.config.extraction import get_extraction_value
from app.extraction.errors import ReadError
from app.extraction.models import SourceFile
from app.extraction.observability import ExtractionLogger, NullExtractionLogger
from app.extraction.plain_text import decode_text_bytes

DOCX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
DOC_MIME_TYPE = "application/msword"

_TAG_RE = re.compile(r"<[^>]*>")
_WS_RE = re.compile(r"\s+")


def is_xml_container(file: SourceFile) -> bool:
    return "openxml" in (file.mime_type or "").lower() or file.extension == "docx"


def _clean_min_length() -> int:
    try:
        return int(get_extraction_value("limits.word_clean_min_length", 50))
    except (TypeError, ValueError):
        return 50


def _docx_paragraphs(content: bytes) -> str:
    document = Document(BytesIO(content))
    lines = [paragraph.text.strip() for paragraph in document.paragraphs if paragraph.text and paragraph.text.strip()]
    for table in document.tables:
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells if cell.text and cell.text.strip()]
            if cells:
                lines.append(" | ".join(dict.fromkeys(cells)))
    return "\n".join(lines)


def _docx_xml_paragraphs(content: bytes) -> str:
    with ZipFile(BytesIO(content)) as archive:
        raw = archive.read("word/document.xml")
    root = ET.fromstring(raw)
    paragraphs: list[str] = []
    for paragraph in root.iter():
        if not str(paragraph.tag).endswith("}p"):
            continue
        texts: list[str] = []
        for node in paragraph.iter():
            if str(node.tag).endswith("}t") and node.text:
                value = node.text.strip()
                if value:
                    texts.append(value)
        if texts:
            paragraphs.append(" ".join(texts))
    return "\n".join(paragraphs)


def strip_markup(text: str) -> str:
    return _WS_RE.sub(" ", _TAG_RE.sub(" ", text)).strip()


def _decode_and_strip(file: SourceFile) -> str:
    text, _ = decode_text_bytes(file.content or b"")
    if not text.strip():
        raise ReadError(f"No readable text in '{file.name}'.")
    if is_xml_container(file):
        cleaned = strip_markup(text)
        if len(cleaned) > _clean_min_length():
            return cleaned
    return text


async def extract_word_text(file: SourceFile, logger: ExtractionLogger | None = None) -> str:
    log = logger or NullExtractionLogger()
    if is_xml_container(file):
        try:
            text = _docx_paragraphs(file.content)
            if text.strip():
                log.info("word_extracted", file=file.name, parser="python-docx", length=len(text))
                return text
        except Exception as exc:  # noqa: BLE001 - fall through to the XML walk
            log.warning("word_python_docx_failed", file=file.name, error=exc)
        try:
            text = _docx_xml_paragraphs(file.content)
            if text.strip():
                log.info("word_extracted", file=file.name, parser="zipxml-fallback", length=len(text))
                return text
        except (BadZipFile, KeyError, ValueError, ET.ParseError) as exc:
            log.warning("word_zipxml_failed", file=file.name, error=exc)

    text = _decode_and_strip(file)
    log.info("word_extracted", file=file.name, parser="decode-strip", length=len(text))
    return text

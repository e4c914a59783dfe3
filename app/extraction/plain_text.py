from __future__ import annotations

from app.extraction.errors import ReadError
from app.extraction.models import SourceFile
from app.extraction.observability import ExtractionLogger, NullExtractionLogger

PDF_HEADER = "%PDF-"

_UTF16_BOMS = (b"\xff\xfe", b"\xfe\xff")


def decode_text_bytes(content: bytes) -> tuple[str, str]:
    """Decode upload bytes, preferring UTF-8; returns (text, encoding)."""
    try:
        return content.decode("utf-8-sig"), "utf-8"
    except UnicodeDecodeError:
        pass
    if content.startswith(_UTF16_BOMS):
        try:
            return content.decode("utf-16"), "utf-16"
        except UnicodeDecodeError:
            pass
    return content.decode("latin-1"), "latin-1"


async def extract_plain_text(file: SourceFile, logger: ExtractionLogger | None = None) -> str:
    log = logger or NullExtractionLogger()
    try:
        text, encoding = decode_text_bytes(file.content or b"")
    except Exception as exc:
        raise ReadError(f"Unable to read '{file.name}' as text: {exc}") from exc

    if not text.strip():
        raise ReadError(f"No readable text in '{file.name}'.")

    # A PDF routed through this path decodes "successfully" into container syntax.
    if PDF_HEADER in text:
        raise ReadError(f"'{file.name}' contains a PDF header; refusing to return raw PDF bytes as text.")

    log.info("plain_text_extracted", file=file.name, encoding=encoding, length=len(text))
    return text

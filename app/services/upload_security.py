from __future__ import annotations

import mimetypes
import re
from io import BytesIO
from typing import Any
from zipfile import ZipFile

DOCX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

EXTENSION_MIME_HINTS = {
    "pdf": "application/pdf",
    "docx": DOCX_MIME_TYPE,
    "doc": "application/msword",
    "txt": "text/plain",
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "webp": "image/webp",
}

GENERIC_MIME_TYPES = {"", "application/octet-stream", "binary/octet-stream", "application/unknown"}

PDF_MAGIC = b"%PDF-"
PNG_MAGIC = b"\x89PNG\r\n\x1a\n"
JPEG_MAGIC = b"\xff\xd8\xff"
WEBP_RIFF_MAGIC = b"RIFF"
WEBP_WEBP_MAGIC = b"WEBP"
OLE_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"
ZIP_MAGICS = (b"PK\x03\x04", b"PK\x05\x06", b"PK\x07\x08")

_UNSAFE_FILENAME_RE = re.compile(r"[\x00-\x1f\x7f/\\]+")


def _safe_str(value: Any, max_len: int = 255) -> str:
    if value is None:
        return ""
    text = str(value).strip()
    if not text:
        return ""
    return text[:max_len]


def safe_filename(filename: str | None) -> str:
    name = _UNSAFE_FILENAME_RE.sub("_", _safe_str(filename))
    return name or "uploaded-file"


def extension_from_filename(filename: str) -> str:
    if "." not in filename:
        return ""
    return _safe_str(filename.rsplit(".", 1)[-1], 20).lower()


def _is_zip_payload(content: bytes) -> bool:
    return any(content.startswith(prefix) for prefix in ZIP_MAGICS)


def _zip_has_paths(content: bytes, prefixes: tuple[str, ...]) -> bool:
    try:
        with ZipFile(BytesIO(content)) as archive:
            names = archive.namelist()
        return any(any(name.startswith(prefix) for prefix in prefixes) for name in names)
    except Exception:
        return False


def _is_probably_text_payload(content: bytes) -> bool:
    if not content:
        return False
    sample = content[:4096]
    if b"\x00" in sample:
        return False
    printable = 0
    for byte in sample:
        if byte in (9, 10, 13) or 32 <= byte <= 126 or byte >= 128:
            printable += 1
    return (printable / len(sample)) >= 0.75


def sniff_mime_type(content: bytes) -> str:
    """Guess a MIME type from magic bytes; empty string when unknown."""
    if content.startswith(PDF_MAGIC):
        return "application/pdf"
    if content.startswith(PNG_MAGIC):
        return "image/png"
    if content.startswith(JPEG_MAGIC):
        return "image/jpeg"
    if len(content) >= 12 and content.startswith(WEBP_RIFF_MAGIC) and content[8:12] == WEBP_WEBP_MAGIC:
        return "image/webp"
    if _is_zip_payload(content) and _zip_has_paths(content, ("word/",)):
        return DOCX_MIME_TYPE
    if content.startswith(OLE_MAGIC):
        return "application/msword"
    if _is_probably_text_payload(content):
        return "text/plain"
    return ""


def resolve_mime_type(filename: str, declared: str | None, content: bytes = b"") -> str:
    """Declared type wins; generic or missing types fall back to extension, then magic bytes."""
    value = _safe_str(declared, 120).split(";", 1)[0].strip().lower()
    if value not in GENERIC_MIME_TYPES:
        return value
    ext = extension_from_filename(filename)
    hinted = EXTENSION_MIME_HINTS.get(ext)
    if hinted:
        return hinted
    sniffed = sniff_mime_type(content)
    if sniffed:
        return sniffed
    guessed, _ = mimetypes.guess_type(filename)
    return guessed or value or "application/octet-stream"

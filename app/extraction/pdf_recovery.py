"""Best-effort text recovery from raw PDF bytes.

Used by the server-side extraction endpoint when structural parsing failed on
the client. It scans the decoded byte stream (plus any Flate-compressed
content streams it can inflate) for text-show operators and text-like runs.
Recall matters more than precision here; callers must validate the output.
"""

from __future__ import annotations

import re
import string
import zlib
from dataclasses import dataclass
from functools import lru_cache

from app.core.config.extraction import get_extraction_value
from app.extraction.errors import PdfRecoveryError

RECOVERY_METHOD = "Server-side Basic PDF Parser"

_DEFAULT_CV_WORDS = (
    "Ingeniero",
    "Ingeniera",
    "Computación",
    "Universidad",
    "Experiencia",
    "Educación",
    "Habilidades",
    "Email",
    "Técnico",
    "Programación",
    "Desarrollo",
)
_DEFAULT_RELEVANT_KEYWORDS = ("ingeniero", "computacion", "experiencia", "educacion", "habilidades")

_LETTER_RE = re.compile(r"[a-zA-Z\u00c0-\u017f]")
_SHOW_TEXT_RE = re.compile(r"\(((?:\\.|[^\\()])+)\)\s*T[jJ]")
_TEXT_ARRAY_RE = re.compile(r"\[([^\[\]]+)\]\s*TJ")
_ARRAY_STRING_RE = re.compile(r"\(((?:\\.|[^\\()])+)\)")
_SENTENCE_RUN_RE = re.compile(r"[A-Z\u00c0-\u017f][a-z\u00c0-\u017f\s,.-]{5,}")
_YEAR_RE = re.compile(r"\b(?:19|20)\d{2}\b")
_EMAIL_DOMAIN_RE = re.compile(r"[a-zA-Z0-9-]{1,63}(?:\.[a-zA-Z0-9-]{1,63}){0,8}\.[a-zA-Z]{2,24}\b")
_EMAIL_LOCAL_CHARS = frozenset(string.ascii_letters + string.digits + "._%+-")
_PHONE_RE = re.compile(r"\b\d{3}[-.\s]?\d{3}[-.\s]?\d{4}\b")
_WORD_RE = re.compile(r"\b[A-Za-z\u00c0-\u017f]{2,}\b")
_ONLY_LETTERS_RE = re.compile(r"^[A-Za-z\u00c0-\u017f]+$")
_ESCAPED_WS_RE = re.compile(r"\\[nrt]")
_WS_RE = re.compile(r"\s+")
_PDF_STRING_ESCAPES = {"n": " ", "r": " ", "t": " ", "b": "", "f": "", "(": "(", ")": ")", "\\": "\\"}

_PDF_KEYWORDS = {"obj", "endobj", "stream", "endstream", "xref", "trailer", "startxref", "null", "true", "false"}
_CONTAINER_WORDS = ("obj", "stream", "endstream")


@dataclass(frozen=True)
class RecoveredText:
    text: str
    method: str
    has_relevant_content: bool


@lru_cache(maxsize=1)
def _cv_word_re() -> re.Pattern[str]:
    configured = get_extraction_value("server_recovery.cv_words")
    words = tuple(str(item) for item in configured) if isinstance(configured, list) and configured else _DEFAULT_CV_WORDS
    return re.compile(r"\b(?:" + "|".join(re.escape(word) for word in words) + r")\b", re.IGNORECASE)


@lru_cache(maxsize=1)
def _relevant_keywords() -> tuple[str, ...]:
    configured = get_extraction_value("server_recovery.relevant_keywords")
    if isinstance(configured, list) and configured:
        return tuple(str(item).lower() for item in configured)
    return _DEFAULT_RELEVANT_KEYWORDS


def _threshold(name: str, default: int) -> int:
    try:
        return int(get_extraction_value(f"server_recovery.{name}", default))
    except (TypeError, ValueError):
        return default


def _unescape_pdf_string(value: str) -> str:
    return re.sub(r"\\(.)", lambda match: _PDF_STRING_ESCAPES.get(match.group(1), match.group(1)), value)


def inflate_streams(raw: bytes) -> list[str]:
    """Decompress Flate-encoded content streams that zlib accepts; others are skipped."""
    inflated: list[str] = []
    position = 0
    while True:
        start = raw.find(b"stream", position)
        if start == -1:
            break
        body = start + len(b"stream")
        if raw.startswith(b"\r\n", body):
            body += 2
        elif raw.startswith(b"\n", body):
            body += 1
        else:
            position = body
            continue
        end = raw.find(b"endstream", body)
        if end == -1:
            break
        position = end + len(b"endstream")

        # Trailing EOL before "endstream" ends up in unused_data.
        decompressor = zlib.decompressobj()
        try:
            data = decompressor.decompress(raw[body:end])
        except zlib.error:
            continue
        if decompressor.eof:
            inflated.append(data.decode("latin-1"))
    return inflated


def _emails(raw_text: str) -> list[str]:
    found: list[str] = []
    at = raw_text.find("@")
    while at != -1:
        begin = at
        while begin > 0 and at - begin < 64 and raw_text[begin - 1] in _EMAIL_LOCAL_CHARS:
            begin -= 1
        domain = _EMAIL_DOMAIN_RE.match(raw_text, at + 1) if begin < at else None
        if domain:
            found.append(f"{raw_text[begin:at]}@{domain.group(0)}")
        at = raw_text.find("@", at + 1)
    return found


def _text_operator_strings(raw_text: str) -> list[str]:
    found: list[str] = []
    for match in _SHOW_TEXT_RE.finditer(raw_text):
        value = _unescape_pdf_string(match.group(1))
        if _LETTER_RE.search(value):
            found.append(value)
    for match in _TEXT_ARRAY_RE.finditer(raw_text):
        for part in _ARRAY_STRING_RE.finditer(match.group(1)):
            value = _unescape_pdf_string(part.group(1))
            if _LETTER_RE.search(value):
                found.append(value)
    return found


def _aggressive_words(raw_text: str) -> list[str]:
    return [
        word
        for word in _WORD_RE.findall(raw_text)
        if word.lower() not in _PDF_KEYWORDS and len(word) > 2 and _ONLY_LETTERS_RE.match(word)
    ]


def _clean(text: str) -> str:
    return _WS_RE.sub(" ", _ESCAPED_WS_RE.sub(" ", text)).strip()


def has_relevant_keywords(text: str) -> bool:
    lower = text.lower()
    return any(keyword in lower for keyword in _relevant_keywords())


def recover_pdf_text(raw: bytes) -> RecoveredText:
    raw_text = raw.decode("utf-8", errors="replace")
    inflated = inflate_streams(raw)
    if inflated:
        raw_text = raw_text + "\n" + "\n".join(inflated)

    pieces: list[str] = _text_operator_strings(raw_text)
    pieces.extend(
        run for run in _SENTENCE_RUN_RE.findall(raw_text) if not any(word in run for word in _CONTAINER_WORDS)
    )
    pieces.extend(_cv_word_re().findall(raw_text))
    structured = [*_YEAR_RE.findall(raw_text), *_emails(raw_text), *_PHONE_RE.findall(raw_text)]

    text = _clean(" ".join(pieces) + " " + " ".join(structured))
    method = RECOVERY_METHOD if not inflated else f"{RECOVERY_METHOD} (inflated streams)"

    if len(text) < _threshold("aggressive_threshold", 100):
        words = _aggressive_words(raw_text)
        if words:
            text = " ".join(words)
            method = f"{RECOVERY_METHOD} (aggressive)"

    if len(text) < _threshold("min_text_length", 50):
        raise PdfRecoveryError("Insufficient text extracted from PDF.")

    return RecoveredText(text=text, method=method, has_relevant_content=has_relevant_keywords(text))

from __future__ import annotations

import re
from functools import lru_cache

from app.core.config.extraction import get_extraction_value
from app.extraction.errors import InputRejected
from app.extraction.models import SourceFile, ValidationOptions, ValidationVerdict

DEFAULT_BINARY_PDF_PATTERNS: tuple[str, ...] = (
    "%PDF-",
    "/Type/Catalog",
    "/Type/Page",
    "endobj",
    "stream\n",
    "stream\r\n",
    "endstream",
    "<<",
    ">>",
    "obj\r\n",
    "xref",
    "trailer",
)

DEFAULT_CV_KEYWORDS: tuple[str, ...] = (
    "experiencia",
    "educación",
    "habilidades",
    "trabajo",
    "empresa",
    "universidad",
    "carrera",
    "estudios",
    "proyecto",
    "responsable",
    "email",
    "@",
    "teléfono",
    "dirección",
    "perfil",
    "ingeniero",
    "experience",
    "education",
    "skills",
    "work",
    "university",
)

DEFAULT_MAX_FILE_BYTES = 50 * 1024 * 1024

_PRESET_DEFAULTS: dict[str, ValidationOptions] = {
    "text": ValidationOptions(min_length=20, check_binary_patterns=True, min_printable_ratio=0.7),
    "pdf": ValidationOptions(min_length=10, check_binary_patterns=True, min_printable_ratio=0.5),
    "word": ValidationOptions(min_length=20, check_binary_patterns=True, min_printable_ratio=0.6),
    "screenshot": ValidationOptions(
        min_length=10,
        check_binary_patterns=False,
        min_printable_ratio=0.0,
        check_relevant_content=False,
    ),
}

PRINTABLE_CHAR_RE = re.compile(r"[a-zA-Z\u00c0-\u017f\s\d]")


@lru_cache(maxsize=1)
def binary_pdf_patterns() -> tuple[str, ...]:
    configured = get_extraction_value("binary_pdf_patterns")
    if isinstance(configured, list) and configured:
        return tuple(str(item) for item in configured if str(item))
    return DEFAULT_BINARY_PDF_PATTERNS


@lru_cache(maxsize=1)
def cv_keywords() -> tuple[str, ...]:
    configured = get_extraction_value("cv_keywords")
    if isinstance(configured, list) and configured:
        return tuple(str(item).lower() for item in configured if str(item))
    return DEFAULT_CV_KEYWORDS


@lru_cache(maxsize=8)
def validation_preset(name: str) -> ValidationOptions:
    """Options for a tier/file type, read from config/extraction.yaml."""
    base = _PRESET_DEFAULTS.get(name)
    if base is None:
        raise ValueError(f"Unknown validation preset '{name}'.")
    raw = get_extraction_value(f"validation.{name}", {}) or {}
    if not isinstance(raw, dict):
        return base
    return ValidationOptions(
        min_length=int(raw.get("min_length", base.min_length)),
        check_binary_patterns=bool(raw.get("check_binary_patterns", base.check_binary_patterns)),
        min_printable_ratio=float(raw.get("min_printable_ratio", base.min_printable_ratio)),
        check_relevant_content=bool(raw.get("check_relevant_content", base.check_relevant_content)),
    )


def detect_binary_patterns(text: str) -> list[str]:
    return [pattern for pattern in binary_pdf_patterns() if pattern in text]


def printable_ratio(text: str) -> float:
    if not text:
        return 0.0
    return len(PRINTABLE_CHAR_RE.findall(text)) / len(text)


def has_relevant_content(text: str) -> bool:
    lower = text.lower()
    return any(keyword in lower for keyword in cv_keywords())


def validate(text: str | None, options: ValidationOptions | None = None) -> ValidationVerdict:
    """Judge whether ``text`` is usable CV text.

    Binary container markers are checked first: a hit means an extractor
    returned raw PDF syntax, and no other heuristic is meaningful after that.
    Missing CV keywords only produce a warning.
    """
    opts = options or ValidationOptions()
    content = text or ""

    if opts.check_binary_patterns:
        detected = detect_binary_patterns(content)
        if detected:
            shown = ", ".join(repr(pattern) for pattern in detected[:6])
            return ValidationVerdict(
                is_valid=False,
                error="Content contains PDF binary syntax.",
                warnings=(f"Detected patterns: {shown}",),
            )

    if len(content.strip()) < opts.min_length:
        return ValidationVerdict(
            is_valid=False,
            error="Content is too short or empty.",
            warnings=(f"Length: {len(content)} characters",),
        )

    ratio = printable_ratio(content)
    if ratio < opts.min_printable_ratio:
        return ValidationVerdict(
            is_valid=False,
            error="Printable character ratio is too low.",
            warnings=(f"Ratio: {ratio:.2f}",),
        )

    warnings: tuple[str, ...] = ()
    if opts.check_relevant_content and not has_relevant_content(content):
        warnings = ("No CV-relevant keywords were detected.",)

    return ValidationVerdict(is_valid=True, warnings=warnings)


def validate_source_file(file: SourceFile | None, max_bytes: int = DEFAULT_MAX_FILE_BYTES) -> None:
    if file is None or not file.content or file.size <= 0:
        raise InputRejected("File is missing or empty.", code="empty_file")
    if file.size > max_bytes or len(file.content) > max_bytes:
        raise InputRejected(
            f"File too large. Maximum allowed size is {max_bytes // (1024 * 1024)} MB.",
            code="file_too_large",
        )

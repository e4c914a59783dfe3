from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

FileKind = Literal["pdf", "word", "text", "image", "unknown"]

EMERGENCY_FALLBACK_TIER = "emergency_fallback"


@dataclass(frozen=True)
class SourceFile:
    content: bytes
    mime_type: str
    name: str
    size: int = -1

    def __post_init__(self) -> None:
        if self.size < 0:
            object.__setattr__(self, "size", len(self.content or b""))

    @property
    def extension(self) -> str:
        return self.name.rsplit(".", 1)[-1].lower() if "." in self.name else ""


@dataclass(frozen=True)
class ValidationOptions:
    min_length: int = 20
    check_binary_patterns: bool = True
    min_printable_ratio: float = 0.7
    check_relevant_content: bool = True


@dataclass(frozen=True)
class ValidationVerdict:
    is_valid: bool
    error: str | None = None
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class ExtractionAttempt:
    tier: str
    success: bool
    text: str = ""
    diagnostic: str = ""
    verdict: ValidationVerdict | None = None
    elapsed_ms: int = 0
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ExtractedDocument:
    text: str
    file_kind: FileKind
    tier: str
    fallback_used: bool = False
    attempts: tuple[ExtractionAttempt, ...] = field(default_factory=tuple)
    warnings: tuple[str, ...] = field(default_factory=tuple)

"""Tiered document text extraction.

A run dispatches on the declared MIME type, tries the strategies registered
for that file kind in order, and stops at the first attempt whose text passes
validation. When every tier fails the run ends in an emergency fallback
document, so a valid upload always yields non-empty text.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Mapping, Sequence

import httpx

from app.core.config import Settings, settings
from app.extraction.fallback import Clock, FallbackContentBuilder
from app.extraction.models import (
    EMERGENCY_FALLBACK_TIER,
    ExtractedDocument,
    ExtractionAttempt,
    FileKind,
    SourceFile,
)
from app.extraction.observability import ExtractionLogger, NullExtractionLogger
from app.extraction.pdf_client import DEFAULT_LINE_THRESHOLD, DEFAULT_PDF_TIMEOUT_S
from app.extraction.pdf_server import ServerPdfClient
from app.extraction.sanitize import DEFAULT_MAX_TEXT_LENGTH, sanitize, truncate
from app.extraction.screenshot import VisionCall
from app.extraction.strategies import (
    ExtractionStrategy,
    PdfClientStrategy,
    PdfServerStrategy,
    PlainTextStrategy,
    ScreenshotStrategy,
    WordStrategy,
)
from app.extraction.validation import DEFAULT_MAX_FILE_BYTES, validate_source_file, validation_preset

PDF_MIME_TYPES = {"application/pdf", "application/x-pdf"}
WORD_MIME_TYPES = {
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/msword",
}
TEXT_MIME_TYPES = {"text/plain"}
IMAGE_MIME_TYPES = {"image/png", "image/jpg", "image/jpeg", "image/webp"}

StrategyTable = Mapping[FileKind, Sequence[ExtractionStrategy]]


def classify_mime_type(mime_type: str | None) -> FileKind:
    value = (mime_type or "").split(";", 1)[0].strip().lower()
    if value in PDF_MIME_TYPES:
        return "pdf"
    if value in WORD_MIME_TYPES:
        return "word"
    if value in TEXT_MIME_TYPES:
        return "text"
    if value in IMAGE_MIME_TYPES:
        return "image"
    return "unknown"


def build_strategy_table(
    *,
    server_client: ServerPdfClient | None = None,
    pdf_timeout_s: float = DEFAULT_PDF_TIMEOUT_S,
    pdf_line_threshold: float = DEFAULT_LINE_THRESHOLD,
    vision: VisionCall | None = None,
    logger: ExtractionLogger | None = None,
) -> dict[FileKind, tuple[ExtractionStrategy, ...]]:
    """Default tier order per file kind.

    PDFs go structural parse, then a plain decode of the same bytes, then the
    server-side heuristic recovery (network, least precise) as last resort.
    """
    pdf_tiers: list[ExtractionStrategy] = [
        PdfClientStrategy(timeout_s=pdf_timeout_s, line_threshold=pdf_line_threshold, logger=logger),
        PlainTextStrategy(validation_preset("pdf"), logger=logger),
    ]
    if server_client is not None:
        pdf_tiers.append(PdfServerStrategy(server_client, logger=logger))

    text_tiers = (PlainTextStrategy(validation_preset("text"), logger=logger),)
    return {
        "pdf": tuple(pdf_tiers),
        "word": (WordStrategy(logger=logger),),
        "text": text_tiers,
        "unknown": text_tiers,
        "image": (ScreenshotStrategy(vision=vision, logger=logger),),
    }


class DocumentExtractor:
    def __init__(
        self,
        strategies: StrategyTable | None = None,
        *,
        logger: ExtractionLogger | None = None,
        locale: str = "es",
        clock: Clock | None = None,
        max_file_bytes: int = DEFAULT_MAX_FILE_BYTES,
        max_text_length: int = DEFAULT_MAX_TEXT_LENGTH,
    ):
        self._logger = logger or NullExtractionLogger()
        self._strategies = strategies if strategies is not None else build_strategy_table(logger=self._logger)
        self._locale = locale
        self._clock = clock
        self._max_file_bytes = max_file_bytes
        self._max_text_length = max_text_length

    @classmethod
    def from_settings(
        cls,
        config: Settings | None = None,
        *,
        logger: ExtractionLogger | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        vision: VisionCall | None = None,
    ) -> "DocumentExtractor":
        cfg = config or settings
        server_client = None
        if cfg.server_pdf_extractor_url:
            server_client = ServerPdfClient(
                cfg.server_pdf_extractor_url,
                timeout_s=cfg.server_pdf_timeout_s,
                transport=transport,
                headers={"X-API-Key": cfg.api_key} if cfg.api_key else None,
                logger=logger,
            )
        strategies = build_strategy_table(
            server_client=server_client,
            pdf_timeout_s=cfg.pdf_parse_timeout_s,
            pdf_line_threshold=cfg.pdf_line_threshold,
            vision=vision,
            logger=logger,
        )
        return cls(
            strategies,
            logger=logger,
            locale=cfg.fallback_locale,
            max_file_bytes=cfg.max_upload_bytes,
            max_text_length=cfg.max_text_length,
        )

    def tiers_for(self, kind: FileKind) -> tuple[ExtractionStrategy, ...]:
        return tuple(self._strategies.get(kind, ()))

    async def _run_tier(self, strategy: ExtractionStrategy, file: SourceFile) -> ExtractionAttempt:
        tier = getattr(strategy, "tier", type(strategy).__name__)
        try:
            return await strategy.try_extract(file)
        except Exception as exc:  # noqa: BLE001 - strategies must never abort the run
            self._logger.error("tier_crashed", tier=tier, file=file.name, error=exc)
            return ExtractionAttempt(tier=tier, success=False, diagnostic=f"{type(exc).__name__}: {exc}")

    def _fallback(
        self,
        file: SourceFile,
        kind: FileKind,
        attempts: list[ExtractionAttempt],
        warnings: list[str],
    ) -> ExtractedDocument:
        reason = attempts[-1].diagnostic if attempts else "no extraction strategy is registered for this file type"
        self._logger.warning(
            "emergency_fallback",
            file=file.name,
            kind=kind,
            tiers=",".join(attempt.tier for attempt in attempts) or "-",
            reason=reason,
        )
        builder = FallbackContentBuilder(locale=self._locale, clock=self._clock).for_file(file, kind)
        content = builder.with_reason(sanitize(reason)).build()
        return ExtractedDocument(
            text=content,
            file_kind=kind,
            tier=EMERGENCY_FALLBACK_TIER,
            fallback_used=True,
            attempts=tuple(attempts),
            warnings=tuple(warnings),
        )

    async def extract(self, file: SourceFile) -> ExtractedDocument:
        """Extract text from ``file``; raises ``InputRejected`` only, before any tier runs."""
        validate_source_file(file, self._max_file_bytes)

        kind = classify_mime_type(file.mime_type)
        warnings: list[str] = []
        self._logger.info("extraction_started", file=file.name, mime_type=file.mime_type, size=file.size, kind=kind)
        if kind == "unknown":
            warnings.append(f"Unrecognized file type '{file.mime_type or 'unknown'}'; processed as plain text.")
            self._logger.warning("unrecognized_mime_type", file=file.name, mime_type=file.mime_type)

        attempts: list[ExtractionAttempt] = []
        for strategy in self.tiers_for(kind):
            attempt = await self._run_tier(strategy, file)
            if attempt.success:
                text = truncate(sanitize(attempt.text), self._max_text_length)
                if text:
                    attempts.append(attempt)
                    verdict_warnings = attempt.verdict.warnings if attempt.verdict else ()
                    self._logger.info("extraction_completed", file=file.name, tier=attempt.tier, length=len(text))
                    return ExtractedDocument(
                        text=text,
                        file_kind=kind,
                        tier=attempt.tier,
                        fallback_used=False,
                        attempts=tuple(attempts),
                        warnings=tuple([*warnings, *verdict_warnings]),
                    )
                attempt = replace(attempt, success=False, diagnostic="no text left after sanitization")
                self._logger.warning("tier_empty_after_sanitize", tier=attempt.tier, file=file.name)
            attempts.append(attempt)

        return self._fallback(file, kind, attempts, warnings)


async def extract_document_text(file: SourceFile, extractor: DocumentExtractor | None = None) -> str:
    document = await (extractor or DocumentExtractor.from_settings()).extract(file)
    return document.text

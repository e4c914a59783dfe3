from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import Any

from app.extraction.models import ExtractionAttempt, SourceFile, ValidationOptions
from app.extraction.observability import ExtractionLogger, NullExtractionLogger
from app.extraction.pdf_client import DEFAULT_LINE_THRESHOLD, DEFAULT_PDF_TIMEOUT_S, extract_pdf_text
from app.extraction.pdf_server import ServerPdfClient
from app.extraction.plain_text import extract_plain_text
from app.extraction.screenshot import VisionCall, extract_screenshot_profile
from app.extraction.validation import validate, validation_preset
from app.extraction.word import extract_word_text


class ExtractionStrategy(ABC):
    """One tier of the fallback sequence.

    Subclasses implement ``extract``; ``try_extract`` wraps it with validation
    and turns every failure into an unsuccessful ``ExtractionAttempt``.
    """

    tier: str = "unknown"

    def __init__(self, options: ValidationOptions | None = None, *, logger: ExtractionLogger | None = None):
        self.options = options or ValidationOptions()
        self.logger = logger or NullExtractionLogger()

    @abstractmethod
    async def extract(self, file: SourceFile) -> tuple[str, dict[str, Any]]:
        raise NotImplementedError

    async def try_extract(self, file: SourceFile) -> ExtractionAttempt:
        started = time.perf_counter()
        self.logger.info("tier_started", tier=self.tier, file=file.name)
        try:
            text, metadata = await self.extract(file)
        except Exception as exc:  # noqa: BLE001
            elapsed = int((time.perf_counter() - started) * 1000)
            diagnostic = f"{type(exc).__name__}: {exc}"
            self.logger.warning("tier_failed", tier=self.tier, file=file.name, reason=diagnostic)
            return ExtractionAttempt(tier=self.tier, success=False, diagnostic=diagnostic, elapsed_ms=elapsed)

        elapsed = int((time.perf_counter() - started) * 1000)
        verdict = validate(text, self.options)
        if not verdict.is_valid:
            diagnostic = f"validation failed: {verdict.error}"
            self.logger.warning(
                "tier_invalid_content",
                tier=self.tier,
                file=file.name,
                reason=verdict.error,
                details="; ".join(verdict.warnings),
            )
            return ExtractionAttempt(
                tier=self.tier,
                success=False,
                text=text,
                diagnostic=diagnostic,
                verdict=verdict,
                elapsed_ms=elapsed,
                metadata=metadata,
            )

        self.logger.info("tier_succeeded", tier=self.tier, file=file.name, length=len(text), elapsed_ms=elapsed)
        return ExtractionAttempt(
            tier=self.tier,
            success=True,
            text=text,
            diagnostic="ok",
            verdict=verdict,
            elapsed_ms=elapsed,
            metadata=metadata,
        )


class PdfClientStrategy(ExtractionStrategy):
    tier = "pdf_client"

    def __init__(
        self,
        options: ValidationOptions | None = None,
        *,
        timeout_s: float = DEFAULT_PDF_TIMEOUT_S,
        line_threshold: float = DEFAULT_LINE_THRESHOLD,
        logger: ExtractionLogger | None = None,
    ):
        super().__init__(options or validation_preset("pdf"), logger=logger)
        self.timeout_s = timeout_s
        self.line_threshold = line_threshold

    async def extract(self, file: SourceFile) -> tuple[str, dict[str, Any]]:
        result = await extract_pdf_text(
            file,
            timeout_s=self.timeout_s,
            line_threshold=self.line_threshold,
            logger=self.logger,
        )
        return result.text, {"pages": result.page_count, "parser": "pypdf"}


class PlainTextStrategy(ExtractionStrategy):
    tier = "plain_text"

    def __init__(self, options: ValidationOptions | None = None, *, logger: ExtractionLogger | None = None):
        super().__init__(options or validation_preset("text"), logger=logger)

    async def extract(self, file: SourceFile) -> tuple[str, dict[str, Any]]:
        text = await extract_plain_text(file, logger=self.logger)
        return text, {"parser": "decode"}


class PdfServerStrategy(ExtractionStrategy):
    tier = "pdf_server"

    def __init__(
        self,
        client: ServerPdfClient,
        options: ValidationOptions | None = None,
        *,
        logger: ExtractionLogger | None = None,
    ):
        super().__init__(options or validation_preset("pdf"), logger=logger)
        self.client = client

    async def extract(self, file: SourceFile) -> tuple[str, dict[str, Any]]:
        recovered = await self.client.extract(file)
        if not recovered.has_relevant_content:
            self.logger.warning("pdf_server_no_relevant_content", file=file.name, method=recovered.method)
        return recovered.text, {
            "method": recovered.method,
            "has_relevant_content": recovered.has_relevant_content,
        }


class WordStrategy(ExtractionStrategy):
    tier = "word"

    def __init__(self, options: ValidationOptions | None = None, *, logger: ExtractionLogger | None = None):
        super().__init__(options or validation_preset("word"), logger=logger)

    async def extract(self, file: SourceFile) -> tuple[str, dict[str, Any]]:
        text = await extract_word_text(file, logger=self.logger)
        return text, {"parser": "word"}


class ScreenshotStrategy(ExtractionStrategy):
    tier = "screenshot"

    def __init__(
        self,
        options: ValidationOptions | None = None,
        *,
        vision: VisionCall | None = None,
        logger: ExtractionLogger | None = None,
    ):
        super().__init__(options or validation_preset("screenshot"), logger=logger)
        self.vision = vision

    async def extract(self, file: SourceFile) -> tuple[str, dict[str, Any]]:
        profile, text = await extract_screenshot_profile(file, vision=self.vision, logger=self.logger)
        return text, {"profile": profile, "source_type": "linkedin_screenshot"}

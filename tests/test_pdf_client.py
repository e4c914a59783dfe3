import asyncio
import sys
import time
import unittest
from pathlib import Path
from unittest.mock import patch

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from app.extraction import DocumentExtractor, validation_preset  # noqa: E402
from app.extraction.errors import PdfParseError  # noqa: E402
from app.extraction.models import SourceFile  # noqa: E402
from app.extraction.observability import RecordingExtractionLogger  # noqa: E402
from app.extraction.pdf_client import (  # noqa: E402
    PdfText,
    _page_text as original_page_text,
    extract_pdf_text,
    join_text_runs,
    normalize_pdf_whitespace,
    parse_pdf_bytes,
)
from app.extraction.strategies import PdfClientStrategy, PlainTextStrategy  # noqa: E402


def _content_stream(lines: list[str]) -> bytes:
    operations = ["BT", "/F1 12 Tf"]
    y = 720
    for line in lines:
        operations.append(f"1 0 0 1 72 {y} Tm ({line}) Tj")
        y -= 20
    operations.append("ET")
    return "\n".join(operations).encode("latin-1")


def build_pdf_pages(*pages: list[str]) -> bytes:
    """PDF with one page per entry and one positioned text line per string, 20pt apart."""
    kids = " ".join(f"{4 + 2 * index} 0 R" for index in range(len(pages)))
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [%s] /Count %d >>" % (kids.encode("ascii"), len(pages)),
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]
    for index, lines in enumerate(pages):
        stream = _content_stream(lines)
        objects.append(
            b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
            b"/Contents %d 0 R /Resources << /Font << /F1 3 0 R >> >> >>" % (5 + 2 * index)
        )
        objects.append(b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream")

    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % number + body + b"\nendobj\n"
    xref_offset = len(out)
    out += b"xref\n0 %d\n" % (len(objects) + 1)
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (len(objects) + 1, xref_offset)
    return bytes(out)


def build_pdf(lines: list[str]) -> bytes:
    return build_pdf_pages(lines)


def _slow_parse(content, **kwargs):
    time.sleep(0.5)
    return PdfText(text="Experiencia profesional", page_count=1)


class JoinTextRunsTests(unittest.TestCase):
    def test_same_line_runs_are_joined_with_a_space(self):
        self.assertEqual(join_text_runs([("Hola", 700.0), ("mundo", 700.0)]), "Hola mundo")

    def test_vertical_jump_starts_a_new_line(self):
        runs = [("Experiencia", 700.0), ("profesional", 699.0), ("Ingeniera de datos", 680.0)]
        self.assertEqual(join_text_runs(runs), "Experiencia profesional\nIngeniera de datos")

    def test_existing_whitespace_is_not_doubled(self):
        self.assertEqual(join_text_runs([("Hola ", 700.0), ("mundo", 701.0)]), "Hola mundo")
        self.assertEqual(join_text_runs([("Hola\n", 700.0), ("mundo", 650.0)]), "Hola\nmundo")

    def test_threshold_is_configurable(self):
        runs = [("a", 700.0), ("b", 690.0)]
        self.assertEqual(join_text_runs(runs, line_threshold=20.0), "a b")
        self.assertEqual(join_text_runs(runs, line_threshold=5.0), "a\nb")

    def test_normalize_whitespace(self):
        self.assertEqual(normalize_pdf_whitespace("  a \t b  \r\n\n\n\nc  "), "a b\n\nc")


class ParsePdfTests(unittest.TestCase):
    def test_text_lines_are_recovered(self):
        content = build_pdf(["Experiencia profesional", "Ingeniera de Software"])
        logger = RecordingExtractionLogger()

        result = parse_pdf_bytes(content, logger=logger)

        lines = [line.strip() for line in result.text.splitlines() if line.strip()]
        self.assertIn("Experiencia profesional", lines)
        self.assertIn("Ingeniera de Software", lines)
        self.assertEqual(result.page_count, 1)
        self.assertIn("pdf_client_loaded", logger.messages("info"))

    def test_pdf_without_text_raises(self):
        with self.assertRaises(PdfParseError):
            parse_pdf_bytes(build_pdf([]))

    def test_corrupt_bytes_raise_parse_error(self):
        file = SourceFile(content=b"this is not a pdf at all", mime_type="application/pdf", name="broken.pdf")
        with self.assertRaises(PdfParseError):
            asyncio.run(extract_pdf_text(file, timeout_s=5))

    def test_async_extraction_returns_text(self):
        file = SourceFile(content=build_pdf(["Habilidades: Python y SQL"]), mime_type="application/pdf", name="cv.pdf")
        result = asyncio.run(extract_pdf_text(file, timeout_s=10))
        self.assertIn("Habilidades: Python y SQL", result.text)

    def test_failing_page_is_skipped_and_logged(self):
        content = build_pdf_pages(["Pagina rota"], ["Experiencia profesional en Acme"])
        logger = RecordingExtractionLogger()
        calls = []

        def flaky_page_text(page, line_threshold):
            calls.append(page)
            if len(calls) == 1:
                raise ValueError("broken content stream")
            return original_page_text(page, line_threshold)

        with patch("app.extraction.pdf_client._page_text", flaky_page_text):
            result = parse_pdf_bytes(content, logger=logger)

        self.assertIn("Experiencia profesional en Acme", result.text)
        self.assertNotIn("Pagina rota", result.text)
        self.assertEqual(result.page_count, 2)
        failures = [fields for level, message, fields in logger.events if message == "pdf_client_page_failed"]
        self.assertEqual(len(failures), 1)
        self.assertEqual(failures[0]["page"], 1)


class PdfTimeoutTests(unittest.TestCase):
    def test_slow_parse_times_out(self):
        file = SourceFile(content=b"%PDF-1.4 slow", mime_type="application/pdf", name="slow.pdf")
        with patch("app.extraction.pdf_client.parse_pdf_bytes", _slow_parse):
            with self.assertRaises(PdfParseError) as ctx:
                asyncio.run(extract_pdf_text(file, timeout_s=0.05))
        self.assertIn("timed out", str(ctx.exception))

    def test_timed_out_tier_hands_over_to_the_next_one(self):
        file = SourceFile(
            content="Experiencia profesional: Ingeniera de Software en Acme".encode("utf-8"),
            mime_type="application/pdf",
            name="cv.pdf",
        )
        extractor = DocumentExtractor(
            {"pdf": (PdfClientStrategy(timeout_s=0.05), PlainTextStrategy(validation_preset("pdf")))}
        )

        with patch("app.extraction.pdf_client.parse_pdf_bytes", _slow_parse):
            document = asyncio.run(extractor.extract(file))

        self.assertEqual(document.tier, "plain_text")
        self.assertFalse(document.attempts[0].success)
        self.assertIn("timed out", document.attempts[0].diagnostic)


if __name__ == "__main__":
    unittest.main()

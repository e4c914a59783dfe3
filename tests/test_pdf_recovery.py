import sys
import time
import unittest
import zlib
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from app.extraction.errors import PdfRecoveryError  # noqa: E402
from app.extraction.pdf_recovery import (  # noqa: E402
    RECOVERY_METHOD,
    has_relevant_keywords,
    inflate_streams,
    recover_pdf_text,
)

RAW_TEXT_PDF = (
    b"%PDF-1.4\n"
    b"4 0 obj\n<< /Length 120 >>\nstream\n"
    b"BT /F1 12 Tf 72 720 Td (Experiencia profesional en desarrollo) Tj "
    b"0 -20 Td (Ingeniero de Software Senior \\(Backend\\)) Tj ET\n"
    b"endstream\nendobj\n"
    b"%%EOF\n"
)

_FLATE_CONTENT = (
    b"BT /F1 12 Tf 72 720 Td "
    b"(Habilidades: Python, SQL, Docker y Kubernetes para desarrollo backend en la nube publica) Tj ET"
)


def _flate_pdf() -> bytes:
    compressed = zlib.compress(_FLATE_CONTENT)
    return (
        b"%%PDF-1.4\n4 0 obj\n<< /Filter /FlateDecode /Length %d >>\nstream\n" % len(compressed)
        + compressed
        + b"\nendstream\nendobj\n%%EOF\n"
    )


class RecoverPdfTextTests(unittest.TestCase):
    def test_text_show_strings_are_recovered(self):
        result = recover_pdf_text(RAW_TEXT_PDF)

        self.assertIn("Experiencia profesional en desarrollo", result.text)
        self.assertIn("Ingeniero de Software Senior (Backend)", result.text)
        self.assertTrue(result.method.startswith(RECOVERY_METHOD))
        self.assertTrue(result.has_relevant_content)

    def test_flate_streams_are_inflated(self):
        self.assertEqual(inflate_streams(_flate_pdf()), [_FLATE_CONTENT.decode("latin-1")])

        result = recover_pdf_text(_flate_pdf())
        self.assertIn("Kubernetes para desarrollo backend", result.text)
        self.assertIn("inflated", result.method)
        self.assertTrue(result.has_relevant_content)

    def test_insufficient_text_raises(self):
        with self.assertRaises(PdfRecoveryError):
            recover_pdf_text(b"%PDF-1.4\n%%EOF\n")

    def test_relevant_keywords(self):
        self.assertTrue(has_relevant_keywords("EXPERIENCIA laboral"))
        self.assertFalse(has_relevant_keywords("lorem ipsum dolor sit amet"))

    def test_contact_email_is_recovered(self):
        raw = RAW_TEXT_PDF.replace(b"%%EOF", b"% contacto ana.torres@acme.com\n%%EOF")
        self.assertIn("ana.torres@acme.com", recover_pdf_text(raw).text)

    def test_unterminated_stream_is_skipped(self):
        raw = b"%PDF-1.4\nstream\n" + zlib.compress(_FLATE_CONTENT)
        self.assertEqual(inflate_streams(raw), [])


class AdversarialInputTests(unittest.TestCase):
    SIZE = 200_000

    def _assert_fast(self, raw: bytes):
        started = time.perf_counter()
        try:
            recover_pdf_text(raw)
        except PdfRecoveryError:
            pass
        self.assertLess(time.perf_counter() - started, 3.0)

    def test_long_runs_are_scanned_in_linear_time(self):
        for chunk in (b"a", b"(", b"[", b"7", b"stream\n", b"a.b-"):
            with self.subTest(chunk=chunk):
                self._assert_fast(b"%PDF-1.4\n" + chunk * (self.SIZE // len(chunk)))

    def test_long_local_part_before_at_sign(self):
        self._assert_fast(b"%PDF-1.4\n" + b"a" * self.SIZE + b"@")
        self._assert_fast(b"%PDF-1.4\n" + b"a@" * (self.SIZE // 2))


if __name__ == "__main__":
    unittest.main()

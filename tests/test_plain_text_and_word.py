import asyncio
import sys
import unittest
from io import BytesIO
from pathlib import Path
from zipfile import ZipFile

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from docx import Document  # noqa: E402

from app.extraction.errors import ReadError  # noqa: E402
from app.extraction.models import SourceFile  # noqa: E402
from app.extraction.observability import RecordingExtractionLogger  # noqa: E402
from app.extraction.plain_text import decode_text_bytes, extract_plain_text  # noqa: E402
from app.extraction.word import DOC_MIME_TYPE, DOCX_MIME_TYPE, extract_word_text, strip_markup  # noqa: E402

_DOCUMENT_XML = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
    '<w:document xmlns:w="http://schemas.openxmlformats.org/wordprocessingml/2006/main">'
    "<w:body>"
    "<w:p><w:r><w:t>Experiencia profesional</w:t></w:r></w:p>"
    "<w:p><w:r><w:t>Ingeniera de datos en Acme</w:t></w:r><w:r><w:t>2019 - 2024</w:t></w:r></w:p>"
    "</w:body>"
    "</w:document>"
)


def _docx_bytes(*paragraphs: str) -> bytes:
    document = Document()
    for paragraph in paragraphs:
        document.add_paragraph(paragraph)
    buffer = BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def _bare_document_zip() -> bytes:
    buffer = BytesIO()
    with ZipFile(buffer, "w") as archive:
        archive.writestr("word/document.xml", _DOCUMENT_XML)
    return buffer.getvalue()


class PlainTextTests(unittest.TestCase):
    def test_decode_prefers_utf8_and_strips_bom(self):
        text, encoding = decode_text_bytes(b"\xef\xbb\xbf" + "Educación".encode("utf-8"))
        self.assertEqual(text, "Educación")
        self.assertEqual(encoding, "utf-8")

    def test_decode_falls_back_to_latin1(self):
        text, encoding = decode_text_bytes("Educación".encode("latin-1"))
        self.assertEqual(text, "Educación")
        self.assertEqual(encoding, "latin-1")

    def test_decode_utf16_with_bom(self):
        text, encoding = decode_text_bytes("Perfil profesional".encode("utf-16"))
        self.assertEqual(text, "Perfil profesional")
        self.assertEqual(encoding, "utf-16")

    def test_extract_returns_decoded_text(self):
        logger = RecordingExtractionLogger()
        file = SourceFile(content="Experiencia: 5 años".encode("utf-8"), mime_type="text/plain", name="cv.txt")
        text = asyncio.run(extract_plain_text(file, logger=logger))
        self.assertEqual(text, "Experiencia: 5 años")
        self.assertIn("plain_text_extracted", logger.messages("info"))

    def test_pdf_header_is_refused(self):
        file = SourceFile(content=b"%PDF-1.4\n1 0 obj\n", mime_type="application/pdf", name="cv.pdf")
        with self.assertRaises(ReadError):
            asyncio.run(extract_plain_text(file))

    def test_blank_text_is_refused(self):
        file = SourceFile(content=b"   \n\t ", mime_type="text/plain", name="blank.txt")
        with self.assertRaises(ReadError):
            asyncio.run(extract_plain_text(file))


class WordExtractionTests(unittest.TestCase):
    def test_docx_paragraphs_are_extracted(self):
        content = _docx_bytes("Ana Torres", "Experiencia profesional", "Ingeniera de datos en Acme")
        file = SourceFile(content=content, mime_type=DOCX_MIME_TYPE, name="cv.docx")
        logger = RecordingExtractionLogger()

        text = asyncio.run(extract_word_text(file, logger=logger))

        self.assertEqual(text.splitlines(), ["Ana Torres", "Experiencia profesional", "Ingeniera de datos en Acme"])
        parsers = [fields.get("parser") for level, message, fields in logger.events if message == "word_extracted"]
        self.assertEqual(parsers, ["python-docx"])

    def test_bare_document_xml_falls_back_to_xml_walk(self):
        file = SourceFile(content=_bare_document_zip(), mime_type=DOCX_MIME_TYPE, name="cv.docx")
        logger = RecordingExtractionLogger()

        text = asyncio.run(extract_word_text(file, logger=logger))

        self.assertEqual(text, "Experiencia profesional\nIngeniera de datos en Acme 2019 - 2024")
        self.assertIn("word_python_docx_failed", logger.messages("warning"))

    def test_legacy_doc_is_decoded_as_text(self):
        body = "Perfil: desarrolladora backend con experiencia en Python"
        file = SourceFile(content=body.encode("utf-8"), mime_type=DOC_MIME_TYPE, name="cv.doc")
        self.assertEqual(asyncio.run(extract_word_text(file)), body)

    def test_unreadable_word_file_raises(self):
        file = SourceFile(content=b"   ", mime_type=DOC_MIME_TYPE, name="cv.doc")
        with self.assertRaises(ReadError):
            asyncio.run(extract_word_text(file))

    def test_strip_markup(self):
        self.assertEqual(strip_markup("<p>Hola <b>mundo</b></p>\n\n<br/>"), "Hola mundo")


if __name__ == "__main__":
    unittest.main()

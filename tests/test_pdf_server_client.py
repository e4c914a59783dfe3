import asyncio
import base64
import json
import sys
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import httpx  # noqa: E402

from app.extraction.errors import RemoteServiceFailure  # noqa: E402
from app.extraction.models import SourceFile  # noqa: E402
from app.extraction.pdf_server import ServerPdfClient  # noqa: E402

EXTRACTOR_URL = "http://extractor.test/v1/extract-pdf-content"
PDF_FILE = SourceFile(content=b"%PDF-1.4 fake bytes", mime_type="application/pdf", name="cv.pdf")


class ServerPdfClientTests(unittest.TestCase):
    def _client(self, handler, **kwargs) -> ServerPdfClient:
        return ServerPdfClient(EXTRACTOR_URL, transport=httpx.MockTransport(handler), **kwargs)

    def test_payload_is_base64_with_file_name(self):
        payload = ServerPdfClient.build_payload(PDF_FILE)
        self.assertEqual(base64.b64decode(payload["base64Data"]), PDF_FILE.content)
        self.assertEqual(payload["fileName"], "cv.pdf")

    def test_success_response_is_returned(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(
                200,
                json={
                    "success": True,
                    "text": "Experiencia profesional en Acme",
                    "length": 31,
                    "method": "Server-side Basic PDF Parser",
                    "hasRelevantContent": True,
                },
            )

        client = self._client(handler, headers={"X-API-Key": "secret"})
        result = asyncio.run(client.extract(PDF_FILE))

        self.assertEqual(result.text, "Experiencia profesional en Acme")
        self.assertEqual(result.method, "Server-side Basic PDF Parser")
        self.assertTrue(result.has_relevant_content)
        self.assertEqual(len(requests), 1)
        self.assertEqual(requests[0].headers["X-API-Key"], "secret")
        self.assertEqual(json.loads(requests[0].content)["fileName"], "cv.pdf")

    def test_error_status_raises_with_code(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                500,
                json={"success": False, "error": {"code": "PDF_EXTRACTION_ERROR", "message": "Insufficient text"}},
            )

        with self.assertRaises(RemoteServiceFailure) as ctx:
            asyncio.run(self._client(handler).extract(PDF_FILE))
        self.assertEqual(ctx.exception.status_code, 500)
        self.assertEqual(ctx.exception.code, "PDF_EXTRACTION_ERROR")
        self.assertIn("Insufficient text", str(ctx.exception))

    def test_unsuccessful_body_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"success": False, "error": {"message": "nothing found"}})

        with self.assertRaises(RemoteServiceFailure) as ctx:
            asyncio.run(self._client(handler).extract(PDF_FILE))
        self.assertEqual(str(ctx.exception), "nothing found")

    def test_malformed_json_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>oops</html>")

        with self.assertRaises(RemoteServiceFailure):
            asyncio.run(self._client(handler).extract(PDF_FILE))

    def test_connection_error_raises_once(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        with self.assertRaises(RemoteServiceFailure):
            asyncio.run(self._client(handler).extract(PDF_FILE))
        self.assertEqual(len(calls), 1)


if __name__ == "__main__":
    unittest.main()

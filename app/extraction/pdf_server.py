from __future__ import annotations

import base64
from typing import Any

import httpx

from app.extraction.errors import RemoteServiceFailure
from app.extraction.models import SourceFile
from app.extraction.observability import ExtractionLogger, NullExtractionLogger
from app.extraction.pdf_recovery import RecoveredText

DEFAULT_SERVER_TIMEOUT_S = 30.0


class ServerPdfClient:
    """Calls the server-side PDF recovery endpoint once, without retries."""

    def __init__(
        self,
        url: str,
        *,
        timeout_s: float = DEFAULT_SERVER_TIMEOUT_S,
        transport: httpx.AsyncBaseTransport | None = None,
        headers: dict[str, str] | None = None,
        logger: ExtractionLogger | None = None,
    ):
        self._url = url
        self._headers = dict(headers or {})
        self._timeout_s = timeout_s
        self._transport = transport
        self._log = logger or NullExtractionLogger()

    @staticmethod
    def build_payload(file: SourceFile) -> dict[str, str]:
        return {
            "base64Data": base64.b64encode(file.content).decode("ascii"),
            "fileName": file.name,
        }

    async def extract(self, file: SourceFile) -> RecoveredText:
        payload = self.build_payload(file)
        self._log.info("pdf_server_request", url=self._url, file=file.name, base64_length=len(payload["base64Data"]))
        try:
            async with httpx.AsyncClient(timeout=self._timeout_s, transport=self._transport) as client:
                response = await client.post(self._url, json=payload, headers=self._headers)
        except httpx.HTTPError as exc:
            raise RemoteServiceFailure(f"Server PDF extractor unreachable: {exc}") from exc

        body: dict[str, Any] = {}
        try:
            parsed = response.json()
            if isinstance(parsed, dict):
                body = parsed
        except ValueError:
            body = {}

        if response.status_code >= 400:
            error = body.get("error") if isinstance(body.get("error"), dict) else {}
            raise RemoteServiceFailure(
                f"Server PDF extractor error: {response.status_code} {error.get('message') or response.reason_phrase}",
                status_code=response.status_code,
                code=error.get("code"),
            )
        if not body:
            raise RemoteServiceFailure("Server PDF extractor returned malformed JSON.", status_code=response.status_code)
        if not body.get("success"):
            error = body.get("error") if isinstance(body.get("error"), dict) else {}
            raise RemoteServiceFailure(
                error.get("message") or "Server PDF extractor failed.",
                status_code=response.status_code,
                code=error.get("code"),
            )

        return RecoveredText(
            text=str(body.get("text") or ""),
            method=str(body.get("method") or "server"),
            has_relevant_content=bool(body.get("hasRelevantContent")),
        )

import asyncio
import base64
import binascii
import logging
from typing import Any

from fastapi import APIRouter, Depends, File, Header, HTTPException, Request, UploadFile, status
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.rate_limit import rate_limit
from app.core.security import check_api_key
from app.extraction import (
    DocumentExtractor,
    ExtractionAttempt,
    InputRejected,
    PdfRecoveryError,
    SourceFile,
    StdlibExtractionLogger,
)
from app.extraction.pdf_recovery import recover_pdf_text
from app.schemas.extraction import (
    AttemptSummary,
    ExtractionResponse,
    ServerPdfErrorDetail,
    ServerPdfRequest,
    ServerPdfResponse,
)
from app.services.cv_enrichment import enrich_cv_text
from app.services.upload_security import resolve_mime_type, safe_filename

router = APIRouter()
logger = logging.getLogger(__name__)

READ_CHUNK_BYTES = 1024 * 64


def _auth(
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
    accept_language: str | None = Header(default=None, alias="Accept-Language"),
):
    check_api_key(x_api_key, accept_language)


def get_document_extractor() -> DocumentExtractor:
    return DocumentExtractor.from_settings(logger=StdlibExtractionLogger(logging.getLogger("app.extraction")))


def _too_large_detail() -> str:
    return f"File too large. Maximum allowed size is {settings.max_upload_bytes // (1024 * 1024)} MB."


async def _read_upload(upload: UploadFile) -> bytes:
    chunks: list[bytes] = []
    total = 0
    while True:
        chunk = await upload.read(READ_CHUNK_BYTES)
        if not chunk:
            break
        total += len(chunk)
        if total > settings.max_upload_bytes:
            raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail=_too_large_detail())
        chunks.append(chunk)
    return b"".join(chunks)


def _attempt_summary(attempt: ExtractionAttempt) -> AttemptSummary:
    return AttemptSummary(
        tier=attempt.tier,
        success=attempt.success,
        diagnostic=attempt.diagnostic,
        characters=len(attempt.text),
        elapsed_ms=max(0, attempt.elapsed_ms),
        warnings=list(attempt.verdict.warnings) if attempt.verdict else [],
    )


@router.post("/extract", response_model=ExtractionResponse)
@rate_limit()
async def extract_document(
    request: Request,
    file: UploadFile = File(...),
    _: None = Depends(_auth),
    extractor: DocumentExtractor = Depends(get_document_extractor),
):
    filename = safe_filename(file.filename)
    content = await _read_upload(file)
    mime_type = resolve_mime_type(filename, file.content_type, content)
    source = SourceFile(content=content, mime_type=mime_type, name=filename, size=len(content))

    try:
        document = await extractor.extract(source)
    except InputRejected as exc:
        code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE if exc.code == "file_too_large" else status.HTTP_400_BAD_REQUEST
        raise HTTPException(status_code=code, detail=str(exc)) from exc

    winning = document.attempts[-1] if document.attempts and not document.fallback_used else None
    details: dict[str, Any] = {"size": source.size, "line_count": len(document.text.splitlines())}
    profile: dict[str, Any] | None = None
    if winning is not None:
        details.update({key: value for key, value in winning.metadata.items() if key != "profile"})
        profile = winning.metadata.get("profile")

    if profile is None and settings.cv_enrichment_enabled and not document.fallback_used:
        profile = await enrich_cv_text(document.text)
        details["enriched"] = profile is not None

    logger.info(
        "document_extracted file=%s kind=%s tier=%s fallback=%s chars=%s",
        filename,
        document.file_kind,
        document.tier,
        document.fallback_used,
        len(document.text),
    )
    return ExtractionResponse(
        filename=filename,
        mime_type=mime_type,
        file_kind=document.file_kind,
        text=document.text,
        characters=len(document.text),
        tier=document.tier,
        fallback_used=document.fallback_used,
        warnings=list(document.warnings),
        attempts=[_attempt_summary(attempt) for attempt in document.attempts],
        profile=profile,
        details=details,
    )


def _server_pdf_error(message: str) -> JSONResponse:
    body = ServerPdfResponse(
        success=False,
        error=ServerPdfErrorDetail(code="PDF_EXTRACTION_ERROR", message=message),
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=body.model_dump(by_alias=True, exclude_none=True),
    )


@router.post("/extract-pdf-content", response_model=ServerPdfResponse, response_model_exclude_none=True)
@rate_limit()
async def extract_pdf_content(request: Request, payload: ServerPdfRequest | None = None, _: None = Depends(_auth)):
    if payload is None or not payload.base64_data:
        return _server_pdf_error("No base64Data provided")
    try:
        raw = base64.b64decode(payload.base64_data, validate=False)
    except (binascii.Error, ValueError):
        return _server_pdf_error("base64Data is not valid base64")
    if len(raw) > settings.max_upload_bytes:
        return _server_pdf_error(_too_large_detail())

    logger.info("server_pdf_processing file=%s bytes=%s", payload.file_name, len(raw))
    try:
        recovered = await asyncio.to_thread(recover_pdf_text, raw)
    except PdfRecoveryError as exc:
        logger.warning("server_pdf_failed file=%s: %s", payload.file_name, exc)
        return _server_pdf_error(str(exc))

    if not recovered.has_relevant_content:
        logger.warning("server_pdf_no_relevant_content file=%s", payload.file_name)
    return ServerPdfResponse(
        success=True,
        text=recovered.text,
        length=len(recovered.text),
        method=recovered.method,
        has_relevant_content=recovered.has_relevant_content,
    )

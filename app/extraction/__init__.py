from .errors import (
    ExtractionError,
    InputRejected,
    PdfParseError,
    PdfRecoveryError,
    ReadError,
    RemoteServiceFailure,
)
from .fallback import FallbackContentBuilder, build_fallback_content, fallback_marker
from .models import (
    ExtractedDocument,
    ExtractionAttempt,
    FileKind,
    SourceFile,
    ValidationOptions,
    ValidationVerdict,
)
from .observability import ExtractionLogger, NullExtractionLogger, StdlibExtractionLogger
from .orchestrator import DocumentExtractor, build_strategy_table, classify_mime_type, extract_document_text
from .sanitize import process_content_safely, sanitize, truncate
from .validation import validate, validate_source_file, validation_preset

__all__ = [
    "ExtractionError",
    "InputRejected",
    "PdfParseError",
    "PdfRecoveryError",
    "ReadError",
    "RemoteServiceFailure",
    "FallbackContentBuilder",
    "build_fallback_content",
    "fallback_marker",
    "ExtractedDocument",
    "ExtractionAttempt",
    "FileKind",
    "SourceFile",
    "ValidationOptions",
    "ValidationVerdict",
    "ExtractionLogger",
    "NullExtractionLogger",
    "StdlibExtractionLogger",
    "DocumentExtractor",
    "build_strategy_table",
    "classify_mime_type",
    "extract_document_text",
    "process_content_safely",
    "sanitize",
    "truncate",
    "validate",
    "validate_source_file",
    "validation_preset",
]

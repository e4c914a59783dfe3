from __future__ import annotations


class ExtractionError(RuntimeError):
    """Base class for failures raised inside the extraction pipeline."""


class InputRejected(ExtractionError):
    """The upload is unusable before any tier runs (missing, empty, too large)."""

    def __init__(self, message: str, *, code: str = "invalid_input"):
        super().__init__(message)
        self.code = code


class ReadError(ExtractionError):
    pass


class PdfParseError(ExtractionError):
    pass


class PdfRecoveryError(ExtractionError):
    pass


class RemoteServiceFailure(ExtractionError):
    def __init__(self, message: str, *, status_code: int | None = None, code: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code

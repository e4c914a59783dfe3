from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

FileKindName = Literal["pdf", "word", "text", "image", "unknown"]


class AttemptSummary(BaseModel):
    tier: str
    success: bool
    diagnostic: str = ""
    characters: int = Field(default=0, ge=0)
    elapsed_ms: int = Field(default=0, ge=0)
    warnings: list[str] = Field(default_factory=list)


class ExtractionResponse(BaseModel):
    filename: str
    mime_type: str
    file_kind: FileKindName
    text: str = Field(min_length=1)
    characters: int = Field(ge=1)
    tier: str
    fallback_used: bool = False
    warnings: list[str] = Field(default_factory=list)
    attempts: list[AttemptSummary] = Field(default_factory=list)
    profile: dict[str, Any] | None = None
    details: dict[str, Any] = Field(default_factory=dict)


class ServerPdfRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    base64_data: str = Field(default="", alias="base64Data")
    file_name: str = Field(default="document.pdf", alias="fileName", max_length=255)


class ServerPdfErrorDetail(BaseModel):
    code: str
    message: str


class ServerPdfResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    text: str | None = None
    length: int | None = None
    method: str | None = None
    has_relevant_content: bool | None = Field(default=None, alias="hasRelevantContent")
    error: ServerPdfErrorDetail | None = None

"""Emergency fallback documents.

When every tier fails, the caller still receives a readable document that
describes the file, the failure and what the user can do about it.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Callable, Sequence

from app.extraction.models import FileKind, SourceFile

Clock = Callable[[], datetime]

_CONTROL_CHARS_RE = re.compile(r"[\x00-\x1f\x7f]")

_MESSAGES: dict[str, dict[str, str]] = {
    "es": {
        "marker": "ARCHIVO PROCESADO CON FALLBACK DE EMERGENCIA",
        "file": "Archivo procesado",
        "type": "Tipo",
        "size": "Tamaño",
        "date": "Fecha",
        "unknown_type": "Desconocido",
        "reason": "Error en extracción",
        "unknown_reason": "Error desconocido",
        "note_title": "[NOTA IMPORTANTE]",
        "note": "No se pudo extraer el texto automáticamente de {label}.",
        "causes": "Posibles causas:",
        "hints": "SOLUCIONES RECOMENDADAS:",
        "closing": "Para continuar, copie manualmente el contenido de su CV y péguelo en un archivo de texto.",
    },
    "en": {
        "marker": "FILE PROCESSED WITH EMERGENCY FALLBACK",
        "file": "Processed file",
        "type": "Type",
        "size": "Size",
        "date": "Date",
        "unknown_type": "Unknown",
        "reason": "Extraction error",
        "unknown_reason": "Unknown error",
        "note_title": "[IMPORTANT NOTE]",
        "note": "The text of {label} could not be extracted automatically.",
        "causes": "Possible causes:",
        "hints": "RECOMMENDED SOLUTIONS:",
        "closing": "To continue, copy the content of your CV manually and paste it into a plain-text file.",
    },
}

_KIND_LABELS: dict[str, dict[str, str]] = {
    "es": {
        "pdf": "este PDF",
        "word": "este documento Word",
        "text": "este archivo de texto",
        "image": "esta imagen",
        "unknown": "este archivo",
    },
    "en": {
        "pdf": "this PDF",
        "word": "this Word document",
        "text": "this text file",
        "image": "this image",
        "unknown": "this file",
    },
}

LIKELY_CAUSES: dict[str, dict[str, tuple[str, ...]]] = {
    "es": {
        "pdf": (
            "PDF escaneado (imagen) sin OCR",
            "PDF protegido o encriptado",
            "Formato PDF corrupto o no estándar",
            "Texto incrustado como imágenes",
        ),
        "image": (
            "El servicio de análisis de imágenes no está disponible",
            "La captura no contiene texto legible",
        ),
    },
    "en": {
        "pdf": (
            "Scanned (image-only) PDF without OCR",
            "Protected or encrypted PDF",
            "Corrupt or non-standard PDF file",
            "Text embedded as images",
        ),
        "image": (
            "The image analysis service is unavailable",
            "The screenshot contains no readable text",
        ),
    },
}

REMEDIATION_HINTS: dict[str, dict[str, tuple[str, ...]]] = {
    "es": {
        "pdf": (
            "Abrir el PDF y copiar/pegar el texto manualmente",
            "Convertir a formato Word (.docx) y volver a subir",
            "Usar un archivo de texto plano (.txt)",
            "Asegurar que el PDF tiene texto seleccionable",
        ),
        "word": (
            "Exportar como PDF desde Word y volver a subir",
            "Copiar todo el contenido y pegarlo en un archivo .txt",
            'Usar "Guardar como" -> "Texto plano" en Word',
        ),
        "image": (
            "Copiar manualmente la información de su perfil",
            "Subir el CV como PDF con texto seleccionable",
            "Usar un archivo de texto plano (.txt)",
        ),
        "default": (
            "Exportar el CV como PDF desde Word/Google Docs",
            "Asegurar que el PDF contiene texto seleccionable",
            "Usar archivos de texto plano (.txt) como alternativa",
        ),
    },
    "en": {
        "pdf": (
            "Open the PDF and copy/paste the text manually",
            "Convert it to Word (.docx) and upload again",
            "Use a plain-text file (.txt)",
            "Make sure the PDF has selectable text",
        ),
        "word": (
            "Export as PDF from Word and upload again",
            "Copy all content and paste it into a .txt file",
            'Use "Save as" -> "Plain text" in Word',
        ),
        "image": (
            "Copy your profile information manually",
            "Upload the CV as a PDF with selectable text",
            "Use a plain-text file (.txt)",
        ),
        "default": (
            "Export the CV as PDF from Word/Google Docs",
            "Make sure the PDF contains selectable text",
            "Use plain-text files (.txt) as an alternative",
        ),
    },
}


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def fallback_marker(locale: str = "es") -> str:
    return _MESSAGES.get(locale, _MESSAGES["es"])["marker"]


class FallbackContentBuilder:
    """Builds the emergency document from file metadata, a reason and hints."""

    def __init__(self, *, locale: str = "es", clock: Clock | None = None):
        self._locale = locale if locale in _MESSAGES else "es"
        self._clock = clock or _utc_now
        self._file: SourceFile | None = None
        self._kind: FileKind = "unknown"
        self._reason: str | None = None
        self._causes: tuple[str, ...] = ()
        self._hints: tuple[str, ...] = ()

    def for_file(self, file: SourceFile, kind: FileKind = "unknown") -> "FallbackContentBuilder":
        self._file = file
        self._kind = kind
        return self

    def with_reason(self, reason: str | None) -> "FallbackContentBuilder":
        self._reason = reason
        return self

    def with_causes(self, causes: Sequence[str]) -> "FallbackContentBuilder":
        self._causes = tuple(causes)
        return self

    def with_hints(self, hints: Sequence[str]) -> "FallbackContentBuilder":
        self._hints = tuple(hints)
        return self

    def _default_causes(self) -> tuple[str, ...]:
        return LIKELY_CAUSES[self._locale].get(self._kind, ())

    def _default_hints(self) -> tuple[str, ...]:
        table = REMEDIATION_HINTS[self._locale]
        return table.get(self._kind, table["default"])

    def build(self) -> str:
        messages = _MESSAGES[self._locale]
        # File names are shown as uploaded; only control characters are dropped.
        name = _CONTROL_CHARS_RE.sub("", (self._file.name or "") if self._file else "").strip() or "-"
        mime_type = _CONTROL_CHARS_RE.sub("", (self._file.mime_type if self._file else "") or "").strip()
        mime_type = mime_type or messages["unknown_type"]
        size = self._file.size if self._file else 0
        label = _KIND_LABELS[self._locale].get(self._kind, _KIND_LABELS[self._locale]["unknown"])
        causes = self._causes or self._default_causes()
        hints = self._hints or self._default_hints()

        lines = [
            messages["marker"],
            "",
            f"{messages['file']}: {name}",
            f"{messages['type']}: {mime_type}",
            f"{messages['size']}: {size} bytes ({size / 1024:.2f} KB)",
            f"{messages['date']}: {self._clock().strftime('%Y-%m-%d %H:%M:%S %Z').strip()}",
            "",
            f"{messages['reason']}: {self._reason or messages['unknown_reason']}",
            "",
            messages["note_title"],
            messages["note"].format(label=label),
        ]
        if causes:
            lines.extend(["", messages["causes"], *[f"- {cause}" for cause in causes]])
        lines.extend(["", messages["hints"], *[f"{index}. {hint}" for index, hint in enumerate(hints, start=1)]])
        lines.extend(["", messages["closing"]])
        return "\n".join(lines)


def build_fallback_content(
    file: SourceFile,
    *,
    kind: FileKind = "unknown",
    reason: str | None = None,
    locale: str = "es",
    clock: Clock | None = None,
) -> str:
    return FallbackContentBuilder(locale=locale, clock=clock).for_file(file, kind).with_reason(reason).build()

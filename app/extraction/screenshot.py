from __future__ import annotations

import asyncio
from io import BytesIO
from typing import Any, Callable

from PIL import Image, UnidentifiedImageError

from app.extraction.errors import ReadError
from app.extraction.models import SourceFile
from app.extraction.observability import ExtractionLogger, NullExtractionLogger
from app.services.llm import LLMError, vision_json_completion

VisionCall = Callable[..., dict[str, Any] | None]

LINKEDIN_SCREENSHOT_PROMPT = (
    "Analyze this screenshot of a LinkedIn profile and extract every visible professional detail "
    "as structured JSON with this shape:\n"
    "{"
    "\"personalInfo\": {\"name\": \"\", \"headline\": \"\", \"location\": \"\", \"connections\": \"\"},"
    "\"summary\": \"\","
    "\"experience\": [{\"company\": \"\", \"position\": \"\", \"duration\": \"\", \"description\": \"\"}],"
    "\"education\": [{\"institution\": \"\", \"degree\": \"\", \"duration\": \"\"}],"
    "\"skills\": [],"
    "\"certifications\": [],"
    "\"languages\": []"
    "}\n"
    "Only extract text that is visible in the image and keep its original language. "
    "Leave fields empty when they are not visible. Reply with the JSON object only."
)


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _items(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def render_profile_text(profile: dict[str, Any]) -> str:
    """Render the structured profile as plain CV-like text."""
    lines: list[str] = []
    personal = profile.get("personalInfo") if isinstance(profile.get("personalInfo"), dict) else {}
    for label, key in (("Nombre", "name"), ("Titular", "headline"), ("Ubicación", "location"), ("Conexiones", "connections")):
        value = _text(personal.get(key))
        if value:
            lines.append(f"{label}: {value}")

    summary = _text(profile.get("summary"))
    if summary:
        lines.extend(["", "Perfil:", summary])

    experience = [item for item in _items(profile.get("experience")) if isinstance(item, dict)]
    if experience:
        lines.extend(["", "Experiencia:"])
        for item in experience:
            head = " en ".join(part for part in (_text(item.get("position")), _text(item.get("company"))) if part)
            duration = _text(item.get("duration"))
            if duration:
                head = f"{head} ({duration})" if head else duration
            if head:
                lines.append(f"- {head}")
            description = _text(item.get("description"))
            if description:
                lines.append(f"  {description}")

    education = [item for item in _items(profile.get("education")) if isinstance(item, dict)]
    if education:
        lines.extend(["", "Educación:"])
        for item in education:
            parts = [_text(item.get("degree")), _text(item.get("institution")), _text(item.get("duration"))]
            entry = " - ".join(part for part in parts if part)
            if entry:
                lines.append(f"- {entry}")

    for label, key in (("Habilidades", "skills"), ("Certificaciones", "certifications"), ("Idiomas", "languages")):
        values = [_text(value) for value in _items(profile.get(key)) if _text(value)]
        if values:
            lines.extend(["", f"{label}: {', '.join(values)}"])

    return "\n".join(lines).strip()


def image_dimensions(content: bytes) -> tuple[int, int]:
    try:
        with Image.open(BytesIO(content)) as image:
            return image.width, image.height
    except (UnidentifiedImageError, OSError) as exc:
        raise ReadError(f"Image could not be decoded: {exc}") from exc


async def extract_screenshot_profile(
    file: SourceFile,
    *,
    vision: VisionCall | None = None,
    logger: ExtractionLogger | None = None,
) -> tuple[dict[str, Any], str]:
    """Send a LinkedIn screenshot to the vision model; returns (profile, rendered text)."""
    log = logger or NullExtractionLogger()
    width, height = image_dimensions(file.content)
    log.info("screenshot_received", file=file.name, width=width, height=height)

    call = vision or vision_json_completion
    profile = await asyncio.to_thread(
        call,
        content=file.content,
        mime_type=file.mime_type or "image/png",
        prompt=LINKEDIN_SCREENSHOT_PROMPT,
        purpose="linkedin_screenshot",
    )
    if not profile:
        raise LLMError("Vision model returned no structured profile.", code="llm_empty")

    text = render_profile_text(profile)
    if not text:
        raise LLMError("Vision model returned an empty profile.", code="llm_empty")
    return profile, text

from __future__ import annotations

import asyncio
import logging
from typing import Any

from app.services.llm import json_completion

logger = logging.getLogger(__name__)

MAX_ENRICHMENT_CHARS = 12000

_SYSTEM_PROMPT = (
    "You parse résumé text into structured JSON. Use only facts present in the text. "
    "Return strict JSON only."
)


def _user_prompt(text: str) -> str:
    return (
        "Extract the candidate profile from this CV text. Keep the original language.\n"
        "Return JSON schema:\n"
        "{"
        "\"personalInfo\": {\"name\": \"\", \"email\": \"\", \"phone\": \"\", \"location\": \"\"},"
        "\"summary\": \"\","
        "\"experience\": [{\"company\": \"\", \"position\": \"\", \"duration\": \"\", \"description\": \"\"}],"
        "\"education\": [{\"institution\": \"\", \"degree\": \"\", \"duration\": \"\"}],"
        "\"skills\": [],"
        "\"languages\": []"
        "}\n"
        f"CV text:\n{text[:MAX_ENRICHMENT_CHARS]}"
    )


async def enrich_cv_text(text: str) -> dict[str, Any] | None:
    """Best-effort structured parse of extracted CV text; never raises."""
    if not text.strip():
        return None
    try:
        return await asyncio.to_thread(
            json_completion,
            system_prompt=_SYSTEM_PROMPT,
            user_prompt=_user_prompt(text),
            temperature=0.1,
            max_output_tokens=1200,
            purpose="cv_parse",
        )
    except Exception as exc:  # noqa: BLE001 - enrichment must not block the extracted text
        logger.warning("cv_enrichment_failed chars=%s: %s", len(text), exc)
        return None

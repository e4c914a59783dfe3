from __future__ import annotations

import base64
import json
import logging
import os
import re
import time
import uuid
from functools import lru_cache
from typing import Any

from openai import OpenAI

logger = logging.getLogger(__name__)

_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


class LLMError(RuntimeError):
    def __init__(self, message: str, *, code: str = "llm_unavailable"):
        super().__init__(message)
        self.code = code


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "y", "on"}


def _looks_like_placeholder(value: str) -> bool:
    lower = value.strip().lower()
    return lower.startswith("your_") or lower.startswith("replace_") or lower in {"changeme", "todo"}


def llm_enabled() -> bool:
    if not _env_bool("LLM_ENABLED", True):
        return False
    provider = (os.getenv("AI_PROVIDER") or "openai").strip().lower()
    if provider != "openai":
        return False
    api_key = (os.getenv("OPENAI_API_KEY") or "").strip()
    if not api_key or _looks_like_placeholder(api_key):
        return False
    return True


@lru_cache(maxsize=1)
def _client() -> OpenAI:
    return OpenAI(
        api_key=(os.getenv("OPENAI_API_KEY") or "").strip(),
        base_url=(os.getenv("OPENAI_BASE_URL") or None),
        timeout=float(os.getenv("LLM_TIMEOUT_S", "20")),
        max_retries=int(os.getenv("OPENAI_MAX_RETRIES", "2")),
    )


def _model() -> str:
    return (os.getenv("AI_MODEL") or os.getenv("OPENAI_MODEL") or "gpt-4o-mini").strip()


def _vision_model() -> str:
    return (os.getenv("AI_VISION_MODEL") or _model()).strip()


def _log_run(*, run_id: str, purpose: str, status: str, started: float, error_code: str | None = None) -> None:
    logger.info(
        "llm_run run_id=%s purpose=%s model=%s status=%s error_code=%s latency_ms=%s",
        run_id,
        purpose,
        _model(),
        status,
        error_code,
        int((time.perf_counter() - started) * 1000),
    )


def parse_json_object(content: str | None) -> dict[str, Any] | None:
    """Parse a JSON object from a model reply, tolerating prose around it."""
    if not content:
        return None
    try:
        parsed = json.loads(content)
    except ValueError:
        match = _JSON_OBJECT_RE.search(content)
        if not match:
            return None
        try:
            parsed = json.loads(match.group(0))
        except ValueError:
            return None
    return parsed if isinstance(parsed, dict) else None


def json_completion(
    *,
    system_prompt: str,
    user_prompt: str,
    temperature: float = 0.2,
    max_output_tokens: int = 900,
    purpose: str = "unknown",
) -> dict[str, Any] | None:
    run_id = uuid.uuid4().hex
    started = time.perf_counter()
    if not llm_enabled():
        _log_run(run_id=run_id, purpose=purpose, status="skipped", started=started, error_code="llm_disabled")
        return None

    try:
        response = _client().chat.completions.create(
            model=_model(),
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=temperature,
            response_format={"type": "json_object"},
            max_tokens=max_output_tokens,
        )
        content = response.choices[0].message.content if response.choices else ""
        parsed = parse_json_object(content)
        if parsed is None:
            _log_run(run_id=run_id, purpose=purpose, status="invalid_schema", started=started, error_code="invalid_schema")
            return None
        _log_run(run_id=run_id, purpose=purpose, status="success", started=started)
        return parsed
    except Exception as exc:  # noqa: BLE001 - callers treat the LLM as best-effort
        logger.warning("llm_json_failed model=%s prompt_len=%s: %s", _model(), len(user_prompt), exc)
        _log_run(run_id=run_id, purpose=purpose, status="error", started=started, error_code="llm_exception")
        return None


def vision_json_completion(
    *,
    content: bytes,
    mime_type: str,
    prompt: str,
    max_output_tokens: int = 2000,
    purpose: str = "vision",
) -> dict[str, Any] | None:
    run_id = uuid.uuid4().hex
    started = time.perf_counter()
    if not llm_enabled():
        _log_run(run_id=run_id, purpose=purpose, status="skipped", started=started, error_code="llm_disabled")
        return None

    try:
        encoded = base64.b64encode(content).decode("utf-8")
        response = _client().chat.completions.create(
            model=_vision_model(),
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {"type": "image_url", "image_url": {"url": f"data:{mime_type};base64,{encoded}"}},
                    ],
                },
            ],
            temperature=0.1,
            max_tokens=max_output_tokens,
        )
        reply = response.choices[0].message.content if response.choices else ""
        parsed = parse_json_object(reply)
        _log_run(
            run_id=run_id,
            purpose=purpose,
            status="success" if parsed is not None else "invalid_schema",
            started=started,
            error_code=None if parsed is not None else "invalid_schema",
        )
        return parsed
    except Exception as exc:  # noqa: BLE001
        logger.warning("llm_vision_failed model=%s mime=%s: %s", _vision_model(), mime_type, exc)
        _log_run(run_id=run_id, purpose=purpose, status="error", started=started, error_code="llm_exception")
        return None

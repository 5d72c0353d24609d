import json
import logging
import os

import httpx

from design_search.errors import AiServiceError

logger = logging.getLogger(__name__)

GEMINI_BASE_URL = os.getenv("GEMINI_BASE_URL", "https://generativelanguage.googleapis.com")
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", os.getenv("AI_API_KEY", ""))
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
GEMINI_IMAGE_MODEL = os.getenv("GEMINI_IMAGE_MODEL", "gemini-2.5-flash-image")
AI_API_TIMEOUT_MS = int(os.getenv("AI_API_TIMEOUT_MS", "20000"))

_JSON_ONLY_INSTRUCTION = (
    "Output strictly valid JSON text. Do not include any explanation, prefix, "
    "suffix or Markdown code fences (such as ```json or ```). Return only the JSON itself."
)


def generate_content(
    body: dict,
    model: str | None = None,
    base_url: str | None = None,
    api_key: str | None = None,
) -> dict:
    """POST a generateContent request and return the decoded response body."""
    key = api_key or GEMINI_API_KEY
    if not key:
        logger.error("GEMINI_API_KEY is not configured")
        raise AiServiceError("AI service is not configured")

    url = f"{(base_url or GEMINI_BASE_URL).rstrip('/')}/v1beta/models/{model or GEMINI_MODEL}:generateContent"
    try:
        resp = httpx.post(
            url,
            params={"key": key},
            json=body,
            timeout=AI_API_TIMEOUT_MS / 1000,
        )
    except httpx.HTTPError as e:
        logger.error("Gemini request failed: %s", e)
        raise AiServiceError(f"AI service call failed - {e}") from e

    if resp.status_code != 200:
        logger.error("Gemini error %d: %s", resp.status_code, resp.text[:1000])
        raise AiServiceError(f"AI service call failed - {resp.text[:1000]}")
    return resp.json()


def extract_text_from_parts(parts) -> str:
    if not parts:
        return ""
    segments = []
    for part in parts:
        text = part.get("text") if isinstance(part, dict) else None
        if isinstance(text, str) and text.strip():
            segments.append(text.strip())
    return "\n".join(segments).strip()


def extract_json_block(raw: str) -> str:
    """Pull the JSON payload out of a model reply: bare JSON or a fenced code block."""
    trimmed = (raw or "").strip()
    if not trimmed:
        raise ValueError("empty response")

    if trimmed.startswith("{") or trimmed.startswith("["):
        return trimmed

    if trimmed.startswith("```"):
        without_fence = trimmed[3:]
        first_newline = without_fence.find("\n")
        if first_newline == -1:
            raise ValueError("incomplete code block")
        # anything before the newline is a language tag
        rest = without_fence[first_newline + 1:]
        end_fence = rest.rfind("```")
        if end_fence == -1:
            raise ValueError("missing closing code fence")
        code = rest[:end_fence].strip()
        if not code:
            raise ValueError("empty code block")
        return code

    raise ValueError("no JSON or markdown code block found")


def generate_text_response(user_prompt: str, system_instruction: str | None = None) -> str:
    body = {"contents": [{"role": "user", "parts": [{"text": user_prompt}]}]}
    if system_instruction:
        body["systemInstruction"] = {"role": "system", "parts": [{"text": system_instruction}]}

    data = generate_content(body)
    candidates = data.get("candidates") or []
    candidate = candidates[0] if candidates else {}
    text = extract_text_from_parts((candidate.get("content") or {}).get("parts"))
    if not text:
        logger.error("Gemini returned no text, finishReason=%s", candidate.get("finishReason"))
        raise AiServiceError("AI service returned an empty response")
    return text


def generate_json_response(user_prompt: str, system_instruction: str | None = None):
    """Like generate_text_response, but the reply must be a JSON document."""
    merged = (
        f"{system_instruction}\n\n{_JSON_ONLY_INSTRUCTION}"
        if system_instruction
        else _JSON_ONLY_INSTRUCTION
    )
    raw = generate_text_response(user_prompt, merged)
    try:
        return json.loads(extract_json_block(raw))
    except ValueError as e:
        logger.error("Failed to parse model output: %s", e)
        raise AiServiceError("Failed to parse AI response") from e

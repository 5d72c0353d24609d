"""Image-capable chat over Gemini with per-session history.

History and the new user turn are sent as one ``generateContent`` request.
Images the model returns inline are written under ``output/generated`` and
replaced by URLs before anything is stored or returned.
"""

import base64
import logging
import os
import uuid
from datetime import datetime
from pathlib import Path

import httpx

from design_search import database, llm, model_service
from design_search.errors import AiServiceError, BadRequestError
from design_search.models import ChatRequest, ChatResponse, Message, MessageRole

logger = logging.getLogger(__name__)

OUTPUT_DIR = Path(__file__).resolve().parent.parent / "output"
APP_BASE_URL = os.getenv("APP_BASE_URL", "http://127.0.0.1:8000")
CHAT_HISTORY_LIMIT = int(os.getenv("CHAT_HISTORY_LIMIT", "50"))

NO_CONTENT_TEXT = "The model returned no usable content"

_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
    "image/svg+xml": "svg",
}


def strip_base64_prefix(data: str) -> str:
    """Drop a ``data:<mime>;base64,`` header if present."""
    trimmed = data.strip()
    comma = trimmed.find(",")
    return trimmed[comma + 1:] if comma != -1 else trimmed


def resolve_extension(mime_type: str) -> str:
    if mime_type in _EXTENSIONS:
        return _EXTENSIONS[mime_type]
    parts = mime_type.split("/")
    suffix = parts[1] if len(parts) > 1 and parts[1] else "png"
    return "jpg" if "jpeg" in suffix else suffix


def to_gemini_role(role: str) -> str:
    if role == MessageRole.ASSISTANT.value:
        return "model"
    if role == MessageRole.SYSTEM.value:
        return "system"
    return "user"


def download_image(url: str) -> dict:
    """Fetch an image and return it as a Gemini ``inlineData`` part."""
    try:
        resp = httpx.get(url, timeout=llm.AI_API_TIMEOUT_MS / 1000, follow_redirects=True)
        resp.raise_for_status()
    except httpx.HTTPError as e:
        logger.error("Image download failed: %s - %s", url, e)
        raise AiServiceError("Image download failed") from e
    mime_type = (resp.headers.get("content-type") or "").split(";")[0].strip() or "image/png"
    return {
        "inlineData": {
            "mimeType": mime_type,
            "data": base64.b64encode(resp.content).decode("ascii"),
        }
    }


def save_image(data: str, mime_type: str | None = None) -> str:
    """Write a base64 image under OUTPUT_DIR/generated/YYYYMMDD and return its URL."""
    raw = base64.b64decode(strip_base64_prefix(data))
    date_folder = datetime.now().strftime("%Y%m%d")
    target_dir = OUTPUT_DIR / "generated" / date_folder
    target_dir.mkdir(parents=True, exist_ok=True)

    filename = f"{uuid.uuid4()}.{resolve_extension((mime_type or '').strip() or 'image/png')}"
    (target_dir / filename).write_bytes(raw)
    return f"{APP_BASE_URL.rstrip('/')}/output/generated/{date_folder}/{filename}"


def _history_contents(session_id: str) -> list[dict]:
    # storage returns newest first; Gemini wants chronological order
    rows = database.list_messages(session_id, CHAT_HISTORY_LIMIT)
    messages = [Message.model_validate(row) for row in reversed(rows)]
    contents = []
    for message in messages:
        parts = []
        text = message.content.strip()
        if text:
            parts.append({"text": text})
        for url in message.images:
            try:
                parts.append(download_image(url))
            except AiServiceError:
                continue
        if parts:
            contents.append({"role": to_gemini_role(message.role), "parts": parts})
    return contents


def _unique_images(images: list[str]) -> list[str]:
    seen = []
    for item in images:
        url = item.strip() if isinstance(item, str) else ""
        if url and url not in seen:
            seen.append(url)
    return seen


def _resolve_endpoint(model: str | None) -> tuple[str, str | None, str | None]:
    """(model id, base url, api key) for the request."""
    if not model:
        return llm.GEMINI_IMAGE_MODEL, None, None
    try:
        config = model_service.resolve_for_chat(model)
    except BadRequestError:
        return model, None, None
    return config.model, config.base_url or None, config.api_key or None


def _parse_reply(data: dict) -> tuple[str, list[str]]:
    candidates = data.get("candidates") or []
    parts = ((candidates[0] if candidates else {}).get("content") or {}).get("parts") or []
    texts, images = [], []
    for part in parts:
        text = part.get("text")
        if isinstance(text, str) and text.strip():
            texts.append(text.strip())
        inline = part.get("inlineData")
        if not isinstance(inline, dict):
            continue
        if inline.get("url"):
            url = inline["url"].strip()
        elif inline.get("data"):
            url = save_image(inline["data"], inline.get("mimeType"))
        else:
            continue
        if url and url not in images:
            images.append(url)
    return "\n".join(texts).strip(), images


def _usage_metadata(data: dict) -> dict:
    usage = data.get("usageMetadata") or {}
    fields = {
        "prompt_tokens": usage.get("promptTokenCount"),
        "completion_tokens": usage.get("candidatesTokenCount"),
        "total_tokens": usage.get("totalTokenCount"),
    }
    return {k: v for k, v in fields.items() if v is not None}


def chat(request: ChatRequest) -> ChatResponse:
    contents = _history_contents(request.session_id)

    text = (request.content or "").strip()
    images = _unique_images(request.images)
    user_parts = []
    if text:
        user_parts.append({"text": text})
    for url in images:
        user_parts.append(download_image(url))
    if not user_parts:
        raise BadRequestError("Message content must not be empty")
    contents.append({"role": "user", "parts": user_parts})

    model, base_url, api_key = _resolve_endpoint(request.model)
    body = {
        "contents": contents,
        "generationConfig": {
            "responseModalities": ["Image", "Text"],
            "imageConfig": {"aspectRatio": request.aspect_ratio or "1:1"},
        },
    }

    database.insert_message(request.session_id, MessageRole.USER.value, text, images)

    data = llm.generate_content(body, model=model, base_url=base_url, api_key=api_key)
    reply_text, reply_images = _parse_reply(data)
    final_text = reply_text or ("" if reply_images else NO_CONTENT_TEXT)
    metadata = _usage_metadata(data)

    database.insert_message(
        request.session_id,
        MessageRole.ASSISTANT.value,
        final_text,
        reply_images,
        {**metadata, "model": model},
    )
    logger.info(
        "Chat session %s: model=%s, %d image(s) returned",
        request.session_id, model, len(reply_images),
    )
    return ChatResponse(content=final_text or None, images=reply_images, metadata=metadata)

from __future__ import annotations

import io
import json
import logging
import os
import time
import uuid
from typing import Any, Dict, List

import requests
from dotenv import load_dotenv
from PIL import Image

from earnings.utils import normalize_line
from errors import OCRError

load_dotenv(os.path.join(os.path.dirname(os.path.abspath(__file__)), ".env"))

logger = logging.getLogger(__name__)


def _get_config() -> tuple[str | None, str | None]:
    endpoint = os.getenv("CLOVA_OCR_ENDPOINT")
    secret = os.getenv("CLOVA_OCR_SECRET")
    return endpoint, secret


def clova_available() -> bool:
    endpoint, secret = _get_config()
    return bool(endpoint and secret)


def _group_rows(data: Dict[str, Any]) -> tuple[List[Dict[str, Any]], str]:
    """Rebuild statement rows from Clova fields.

    Clova returns one field per word and flags the last word of a visual row
    with ``lineBreak``; earnings screenshots put label and amount on the same
    row, so words are joined back into rows before parsing.
    """
    rows: List[Dict[str, Any]] = []
    words: List[str] = []
    confidences: List[float] = []

    def flush() -> None:
        text = normalize_line(" ".join(words))
        if text:
            confidence = sum(confidences) / len(confidences) if confidences else None
            rows.append({"text": text, "confidence": confidence})
        words.clear()
        confidences.clear()

    for image_entry in data.get("images", []):
        for field in image_entry.get("fields", []):
            word = field.get("inferText", "")
            if word:
                words.append(word)
            if field.get("inferConfidence") is not None:
                confidences.append(float(field["inferConfidence"]))
            if field.get("lineBreak", True):
                flush()
        flush()

    return rows, "\n".join(row["text"] for row in rows)


def run_clova_ocr(image: Image.Image) -> Dict[str, Any]:
    endpoint, secret = _get_config()
    if not endpoint or not secret:
        raise OCRError("Clova OCR is not configured (CLOVA_OCR_ENDPOINT / CLOVA_OCR_SECRET).")

    buffer = io.BytesIO()
    quality = int(os.getenv("CLOVA_OCR_JPEG_QUALITY", "90"))
    image.convert("RGB").save(buffer, format="JPEG", quality=quality)
    buffer.seek(0)

    upload_name = f"statement-{uuid.uuid4().hex}.jpg"
    message = {
        "version": os.getenv("CLOVA_OCR_VERSION", "V2"),
        "requestId": uuid.uuid4().hex,
        "timestamp": int(time.time() * 1000),
        "images": [{"format": "jpg", "name": upload_name}],
    }
    files = {
        "file": (upload_name, buffer.read(), "application/octet-stream"),
        "message": (None, json.dumps(message), "application/json"),
    }
    timeout = float(os.getenv("CLOVA_OCR_TIMEOUT", "15"))

    try:
        response = requests.post(endpoint, headers={"X-OCR-SECRET": secret}, files=files, timeout=timeout)
    except requests.RequestException as exc:
        raise OCRError(f"Clova OCR unreachable: {exc}") from exc
    if not response.ok:
        raise OCRError(f"Clova OCR request failed ({response.status_code})")

    try:
        data = response.json()
    except ValueError as exc:
        raise OCRError("Failed to parse Clova OCR response as JSON") from exc
    lines, raw_text = _group_rows(data)
    if not lines:
        raise OCRError("Clova OCR response contained no text.")

    logger.debug("Clova OCR returned %d rows", len(lines))
    metadata = {
        "engine": "clova",
        "inferResult": [img.get("inferResult") for img in data.get("images", [])],
    }
    return {"raw_text": raw_text, "lines": lines, "metadata": metadata}

from __future__ import annotations

import json
import logging
import os
import re
from typing import Any, Dict, Optional

import requests
from dotenv import load_dotenv

load_dotenv(os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), ".env"))

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-1.5-flash"
DEFAULT_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

PROMPT_TEMPLATE = """You read OCR text from a gig worker's earnings screenshot.
Return a single JSON object with these keys (omit a key or use null when the text does not show it):
  platform: platform name as written
  date: statement date or period start, copied as written
  total: net payout as a number
  basePay: base pay as a number
  bonus: bonus or incentive as a number
  distancePay: distance, fuel or mileage pay as a number
  penalties: list of {{"type": label, "amount": positive number}}
  ratings: list of {{"rating": number, "date": optional date}}
Do not invent values. Numbers must not contain currency symbols.

OCR text:
{text}
"""


class RefinementError(RuntimeError):
    pass


def _get_config() -> tuple[str | None, str, str, float]:
    api_key = os.getenv("AI_API_KEY")
    model = os.getenv("AI_MODEL", DEFAULT_MODEL)
    url = os.getenv("AI_API_URL", DEFAULT_URL).format(model=model)
    timeout = float(os.getenv("AI_API_TIMEOUT", "20"))
    return api_key, model, url, timeout


def refine_available() -> bool:
    api_key, _, _, _ = _get_config()
    return bool(api_key)


def _response_text(data: Dict[str, Any]) -> str:
    candidates = data.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(part.get("text", "") for part in parts)


def _decode_json(text: str) -> Optional[Dict[str, Any]]:
    text = text.strip()
    fenced = re.search(r"```(?:json)?\s*(.*?)```", text, re.DOTALL)
    if fenced:
        text = fenced.group(1).strip()
    if not text:
        return None
    try:
        decoded = json.loads(text)
    except ValueError as exc:
        raise RefinementError(f"Refinement response is not valid JSON: {exc}") from exc
    if not isinstance(decoded, dict):
        raise RefinementError("Refinement response is not a JSON object")
    return decoded or None


def run_refinement(raw_text: str) -> Optional[Dict[str, Any]]:
    """Ask the language model for a structured reading of the OCR text.

    Returns ``None`` when no API key is configured or the model declines to
    answer. Transport and decoding failures raise ``RefinementError``.
    """
    api_key, model, url, timeout = _get_config()
    if not api_key:
        return None

    payload = {
        "contents": [{"role": "user", "parts": [{"text": PROMPT_TEMPLATE.format(text=raw_text)}]}],
        "generationConfig": {"temperature": 0, "responseMimeType": "application/json"},
    }
    headers = {"x-goog-api-key": api_key, "Content-Type": "application/json"}

    logger.info("Requesting earnings refinement from %s", model)
    try:
        response = requests.post(url, headers=headers, json=payload, timeout=timeout)
    except requests.RequestException as exc:
        raise RefinementError(f"Refinement service unreachable: {exc}") from exc
    if not response.ok:
        raise RefinementError(f"Refinement request failed ({response.status_code})")

    try:
        data = response.json()
    except ValueError as exc:
        raise RefinementError("Refinement service returned a non-JSON body") from exc

    return _decode_json(_response_text(data))

from __future__ import annotations

import logging
import os
from typing import Any, Dict, List

from dotenv import load_dotenv
from PIL import Image

from clova_client import clova_available, run_clova_ocr
from errors import OCRError
from paddle_engine import run_paddle_ocr

load_dotenv(os.path.join(os.path.dirname(os.path.abspath(__file__)), ".env"))

logger = logging.getLogger(__name__)

ENGINES = ("auto", "clova", "paddle", "demo")

# Served by the "demo" engine so the parse/audit flow can run without OCR credentials.
DEMO_STATEMENT = """Gig Platform Earnings Summary
Platform: Deliveroo
Date: 2025-12-05
Total Earnings: ₹420.00
Base Pay: ₹250.00
Incentive/Bonus: ₹100.00
Distance Pay: ₹20.50
Deduction/Penalty: ₹50.00 (Safety Fine)
Trip Count: 10
Hours Logged: 2.5
Rating: 4.8/5"""


def selected_engine() -> str:
    engine = os.getenv("OCR_ENGINE", "auto").lower()
    if engine not in ENGINES:
        raise OCRError(f"Unknown OCR_ENGINE '{engine}' (expected one of {', '.join(ENGINES)})")
    return engine


def demo_result() -> Dict[str, Any]:
    lines = [{"text": line, "confidence": None} for line in DEMO_STATEMENT.splitlines()]
    return {"raw_text": DEMO_STATEMENT, "lines": lines, "metadata": {"engine": "demo"}}


def extract_text(image: Image.Image) -> Dict[str, Any]:
    """Read an earnings screenshot and return ``{"raw_text", "lines", "metadata"}``.

    With ``OCR_ENGINE=auto`` Clova is tried first when configured, then
    PaddleOCR; errors from skipped engines are kept in the metadata. Raises
    ``OCRError`` when no engine produced text.
    """
    engine = selected_engine()
    if engine == "demo":
        return demo_result()
    if engine == "clova":
        return run_clova_ocr(image)
    if engine == "paddle":
        return run_paddle_ocr(image)

    errors: List[str] = []
    if clova_available():
        try:
            return run_clova_ocr(image)
        except OCRError as exc:
            logger.warning("Clova OCR failed, falling back to PaddleOCR: %s", exc)
            errors.append(f"clova: {exc}")

    try:
        result = run_paddle_ocr(image)
    except (OCRError, ImportError) as exc:
        errors.append(f"paddle: {exc}")
        raise OCRError("; ".join(errors)) from exc

    if errors:
        result["metadata"]["fallback_errors"] = errors
    return result

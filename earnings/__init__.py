from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

from . import llm
from .models import ParsedEarnings, Penalty, Rating
from .refinement import apply_refinement, coerce_refinement, fill_missing_total
from .statement import StatementParser

logger = logging.getLogger(__name__)

Refiner = Callable[[str], Optional[Dict[str, Any]]]

__all__ = ["ParsedEarnings", "Penalty", "Rating", "Refiner", "parse_earnings"]


def _default_refiner() -> Optional[Refiner]:
    if llm.refine_available():
        return llm.run_refinement
    return None


def parse_earnings(
    raw_text: str,
    context: Optional[Dict[str, Any]] = None,
    *,
    refiner: Optional[Refiner] = None,
) -> ParsedEarnings:
    """Turn OCR text from an earnings screenshot into a ParsedEarnings record.

    Never raises. A fault while scanning lines returns whatever was collected
    up to that point; a failing refiner leaves the heuristic result standing.
    ``refiner`` defaults to the language model client when ``AI_API_KEY`` is set.
    """
    context = context or {}
    raw_text = raw_text or ""
    platform = context.get("platform")
    record = ParsedEarnings(raw_text=raw_text, platform=platform or None)

    try:
        StatementParser().scan(record, raw_text)
    except Exception:  # noqa: BLE001
        logger.exception("Failed to scan earnings text; returning partial result")
        return record

    refiner = refiner or _default_refiner()
    if refiner is not None:
        try:
            refined = refiner(raw_text)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Earnings refinement failed, keeping heuristic result: %s", exc)
            refined = None
        if refined:
            apply_refinement(record, coerce_refinement(refined))

    return fill_missing_total(record)

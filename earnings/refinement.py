from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from .models import MONEY_FIELDS, WIRE_KEYS, ParsedEarnings, Penalty, Rating
from .utils import normalize_date, to_amount

logger = logging.getLogger(__name__)


def _lookup(data: Dict[str, Any], attr: str) -> Any:
    # Models answer in either the camelCase wire keys or snake_case.
    if WIRE_KEYS[attr] in data:
        return data[WIRE_KEYS[attr]]
    return data.get(attr)


def coerce_refinement(data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Map a model response onto the record's fields.

    Only known fields survive, each converted to the record's type. Keys with
    a null or unparseable value count as "not supplied".
    """
    updates: Dict[str, Any] = {}
    if not isinstance(data, dict):
        return updates

    for attr in ("platform", "date"):
        value = _lookup(data, attr)
        if isinstance(value, str) and value.strip():
            updates[attr] = value.strip()

    for attr in MONEY_FIELDS:
        amount = to_amount(_lookup(data, attr))
        if amount is not None:
            updates[attr] = amount

    penalties = _lookup(data, "penalties")
    if isinstance(penalties, list):
        updates["penalties"] = [
            penalty
            for penalty in (Penalty.from_dict(item) for item in penalties if isinstance(item, dict))
            if penalty is not None
        ]

    ratings = _lookup(data, "ratings")
    if isinstance(ratings, list):
        updates["ratings"] = [
            rating
            for rating in (Rating.from_dict(item) for item in ratings if isinstance(item, dict))
            if rating is not None
        ]

    return updates


def apply_refinement(record: ParsedEarnings, updates: Dict[str, Any]) -> ParsedEarnings:
    for attr, value in updates.items():
        setattr(record, attr, value)
    if "date" in updates:
        record.date_iso = normalize_date(record.date)
    if "total" in updates:
        record.total_source = "refined"
    if updates:
        logger.debug("Refinement overrode fields: %s", ", ".join(sorted(updates)))
    return record


def fill_missing_total(record: ParsedEarnings) -> ParsedEarnings:
    if record.total is not None or not record.has_pay_components():
        return record
    record.total = round(record.gross_pay - record.penalty_total, 2)
    record.total_source = "computed"
    logger.info("Total missing from statement; derived %.2f from pay components", record.total)
    return record

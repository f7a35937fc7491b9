"""
Fairness audit for parsed earnings statements.

Compares one ParsedEarnings record against a baseline and flags:
- missing money: the paid total falls short of its own components, of an
  expected total supplied by the caller, or of an hourly pay floor;
- penalty mismatch: deductions eat more than the allowed share of gross pay;
- rating issue: a rating under the floor, or a drop across the statement.
"""

from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Union

from dotenv import load_dotenv

from earnings import ParsedEarnings
from earnings.utils import to_amount

load_dotenv(os.path.join(os.path.dirname(os.path.abspath(__file__)), ".env"))

logger = logging.getLogger(__name__)

MISSING_WEIGHT_CAP = 0.5
PENALTY_WEIGHT = 0.25
RATING_WEIGHT = 0.15


@dataclass
class FairnessBaseline:
    min_hourly_rate: Optional[float] = None
    max_penalty_ratio: float = 0.10
    min_rating: float = 4.0
    rating_drop: float = 0.5

    @classmethod
    def from_env(cls) -> "FairnessBaseline":
        hourly = os.getenv("FAIRNESS_MIN_HOURLY_RATE")
        return cls(
            min_hourly_rate=float(hourly) if hourly else None,
            max_penalty_ratio=float(os.getenv("FAIRNESS_MAX_PENALTY_RATIO", "0.10")),
            min_rating=float(os.getenv("FAIRNESS_MIN_RATING", "4.0")),
            rating_drop=float(os.getenv("FAIRNESS_RATING_DROP", "0.5")),
        )

    def with_overrides(self, context: Dict[str, Any]) -> "FairnessBaseline":
        values = asdict(self)
        for key in values:
            override = to_amount(context.get(key))
            if override is not None:
                values[key] = override
        return FairnessBaseline(**values)


@dataclass
class AuditResult:
    fairness_score: float
    missing_amount: float = 0.0
    penalty_mismatch: bool = False
    rating_issue: bool = False
    explanation: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fairnessScore": self.fairness_score,
            "missingAmount": self.missing_amount,
            "penaltyMismatch": self.penalty_mismatch,
            "ratingIssue": self.rating_issue,
            "explanation": self.explanation,
        }


def _shortfalls(record: ParsedEarnings, context: Dict[str, Any], baseline: FairnessBaseline) -> List[tuple]:
    """Return (shortfall, reference, reason) for each check that found money missing."""
    findings = []
    if record.total is None:
        return findings

    # A computed total is derived from the components, so reconciling it against them proves nothing.
    if record.total_source != "computed" and record.has_pay_components():
        expected = record.gross_pay - record.penalty_total
        if record.total < expected:
            findings.append((expected - record.total, expected, f"paid total is {expected - record.total:.2f} below its components"))

    expected_total = to_amount(context.get("expected_total"))
    if expected_total is not None and record.total < expected_total:
        findings.append(
            (expected_total - record.total, expected_total, f"paid total is {expected_total - record.total:.2f} below the expected {expected_total:.2f}")
        )

    hours = to_amount(context.get("hours_worked"))
    if hours and baseline.min_hourly_rate:
        floor = hours * baseline.min_hourly_rate
        if record.total < floor:
            findings.append((floor - record.total, floor, f"pay of {record.total:.2f} for {hours:g}h is below the hourly floor of {floor:.2f}"))

    return findings


def _penalty_finding(record: ParsedEarnings, baseline: FairnessBaseline) -> Optional[str]:
    penalties = record.penalty_total
    if penalties <= 0:
        return None
    gross = record.gross_pay
    if gross <= 0:
        return f"deductions of {penalties:.2f} with no recorded pay"
    ratio = penalties / gross
    if ratio > baseline.max_penalty_ratio:
        return f"deductions take {ratio:.0%} of gross pay (allowed {baseline.max_penalty_ratio:.0%})"
    return None


def _rating_finding(record: ParsedEarnings, baseline: FairnessBaseline) -> Optional[str]:
    values = [rating.rating for rating in record.ratings]
    if not values:
        return None
    lowest = min(values)
    if lowest < baseline.min_rating:
        return f"rating {lowest:g} is below {baseline.min_rating:g}"
    if len(values) > 1 and values[0] - values[-1] >= baseline.rating_drop:
        return f"rating dropped from {values[0]:g} to {values[-1]:g}"
    return None


def _sentence(notes: List[str]) -> str:
    text = "; ".join(notes)
    return text[:1].upper() + text[1:] + "."


def audit_earnings(
    parsed: Union[ParsedEarnings, Dict[str, Any]],
    context: Optional[Dict[str, Any]] = None,
    baseline: Optional[FairnessBaseline] = None,
) -> AuditResult:
    context = context or {}
    record = parsed if isinstance(parsed, ParsedEarnings) else ParsedEarnings.from_dict(parsed)
    baseline = (baseline or FairnessBaseline.from_env()).with_overrides(context)

    score = 1.0
    notes: List[str] = []

    missing_amount = 0.0
    shortfalls = _shortfalls(record, context, baseline)
    if shortfalls:
        shortfall, reference, reason = max(shortfalls, key=lambda item: item[0])
        missing_amount = round(shortfall, 2)
        score -= min(shortfall / reference, MISSING_WEIGHT_CAP) if reference > 0 else MISSING_WEIGHT_CAP
        notes.append(reason)

    penalty_reason = _penalty_finding(record, baseline)
    if penalty_reason:
        score -= PENALTY_WEIGHT
        notes.append(penalty_reason)

    rating_reason = _rating_finding(record, baseline)
    if rating_reason:
        score -= RATING_WEIGHT
        notes.append(rating_reason)

    if record.total_source == "computed":
        notes.append("total was derived from pay components, not read from the statement")
    if not notes:
        notes.append("no fairness issues found")

    result = AuditResult(
        fairness_score=round(min(max(score, 0.0), 1.0), 2),
        missing_amount=missing_amount,
        penalty_mismatch=penalty_reason is not None,
        rating_issue=rating_reason is not None,
        explanation=_sentence(notes),
    )
    logger.info("Audited %s statement: score %.2f", record.platform or "unknown", result.fairness_score)
    return result

from __future__ import annotations

import re
from typing import List, Optional

from .models import ParsedEarnings, Penalty, Rating
from .utils import extract_date, extract_rating, normalize_date, num_from


class StatementParser:
    """Line-by-line keyword heuristics for gig platform earnings screenshots.

    Categories are tested independently, so one line may feed several fields.
    Scalar money fields keep the first value found; penalties and ratings
    collect every matching line.
    """

    name = "heuristic"
    DEFAULT_PENALTY_TYPE = "Deduction"

    DATE_KEYWORDS = re.compile(r"date|period|week")
    BASE_PAY_KEYWORDS = re.compile(r"base pay|basic|rate")
    BONUS_KEYWORDS = re.compile(r"bonus|incentive|extra")
    DISTANCE_KEYWORDS = re.compile(r"distanc|fuel|mileage")
    TOTAL_KEYWORDS = re.compile(r"total|earned|net payable")
    PENALTY_KEYWORDS = re.compile(r"penalt|deduct|surcharge|fine")
    RATING_KEYWORDS = re.compile(r"rating|feedback")

    def split_lines(self, raw_text: str) -> List[str]:
        stripped = (line.strip() for line in re.split(r"\r?\n", raw_text or ""))
        return [line for line in stripped if line]

    def scan(self, record: ParsedEarnings, raw_text: str) -> ParsedEarnings:
        for line in self.split_lines(raw_text):
            self._apply_line(record, line)
        return record

    def _apply_line(self, record: ParsedEarnings, line: str) -> None:
        low = line.lower()

        if record.platform is None and "platform" in low:
            record.platform = self._value_after_colon(line)

        if record.date is None and self.DATE_KEYWORDS.search(low):
            record.date = extract_date(line)
            record.date_iso = normalize_date(record.date)

        if record.base_pay is None and self.BASE_PAY_KEYWORDS.search(low):
            record.base_pay = num_from(line)
        if record.bonus is None and self.BONUS_KEYWORDS.search(low):
            record.bonus = num_from(line)
        if record.distance_pay is None and self.DISTANCE_KEYWORDS.search(low):
            record.distance_pay = num_from(line)
        if record.total is None and self.TOTAL_KEYWORDS.search(low):
            record.total = num_from(line)
            if record.total is not None:
                record.total_source = "extracted"

        if self.PENALTY_KEYWORDS.search(low):
            amount = num_from(line)
            if amount is not None:
                record.penalties.append(Penalty(type=self._penalty_type(line), amount=abs(amount)))

        if self.RATING_KEYWORDS.search(low):
            rating = extract_rating(line)
            if rating is not None:
                record.ratings.append(Rating(rating=rating))

    def _value_after_colon(self, line: str) -> Optional[str]:
        if ":" not in line:
            return None
        value = line.split(":", 1)[1].strip()
        return value or None

    def _penalty_type(self, line: str) -> str:
        if ":" in line:
            label = line.split(":", 1)[0].strip()
            if label:
                return label
        return self.DEFAULT_PENALTY_TYPE

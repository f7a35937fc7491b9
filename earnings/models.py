from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .utils import to_amount

MONEY_FIELDS = ("total", "base_pay", "bonus", "distance_pay")

# Attribute name -> wire key shared with the review frontend.
WIRE_KEYS = {
    "platform": "platform",
    "date": "date",
    "date_iso": "dateIso",
    "total": "total",
    "total_source": "totalSource",
    "base_pay": "basePay",
    "bonus": "bonus",
    "distance_pay": "distancePay",
    "penalties": "penalties",
    "ratings": "ratings",
    "raw_text": "rawText",
}


@dataclass
class Penalty:
    type: Optional[str]
    amount: float

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "amount": self.amount}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Optional["Penalty"]:
        amount = to_amount(data.get("amount"))
        if amount is None:
            return None
        label = data.get("type")
        return cls(type=str(label) if label is not None else None, amount=abs(amount))


@dataclass
class Rating:
    rating: float
    date: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"rating": self.rating}
        if self.date is not None:
            payload["date"] = self.date
        return payload

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Optional["Rating"]:
        value = to_amount(data.get("rating"))
        if value is None:
            return None
        when = data.get("date")
        return cls(rating=value, date=str(when) if when is not None else None)


@dataclass
class ParsedEarnings:
    """Structured view of one earnings statement.

    Money values are plain floats in the statement currency. ``total_source``
    records where ``total`` came from: ``"extracted"`` (heuristic pass),
    ``"refined"`` (model output) or ``"computed"`` (component fallback, an
    estimate only).
    """

    raw_text: str = ""
    platform: Optional[str] = None
    date: Optional[str] = None
    date_iso: Optional[str] = None
    total: Optional[float] = None
    total_source: Optional[str] = None
    base_pay: Optional[float] = None
    bonus: Optional[float] = None
    distance_pay: Optional[float] = None
    penalties: List[Penalty] = field(default_factory=list)
    ratings: List[Rating] = field(default_factory=list)

    @property
    def penalty_total(self) -> float:
        return sum(penalty.amount for penalty in self.penalties)

    @property
    def gross_pay(self) -> float:
        return (self.base_pay or 0) + (self.bonus or 0) + (self.distance_pay or 0)

    def has_pay_components(self) -> bool:
        # Gates the missing-total fallback: penalties alone never yield a negative total.
        return any(value is not None for value in (self.base_pay, self.bonus, self.distance_pay))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "platform": self.platform,
            "date": self.date,
            "dateIso": self.date_iso,
            "total": self.total,
            "totalSource": self.total_source,
            "basePay": self.base_pay,
            "bonus": self.bonus,
            "distancePay": self.distance_pay,
            "penalties": [penalty.to_dict() for penalty in self.penalties],
            "ratings": [rating.to_dict() for rating in self.ratings],
            "rawText": self.raw_text,
        }

    @staticmethod
    def _items(data: Dict[str, Any], key: str) -> List[Dict[str, Any]]:
        value = data.get(key)
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, dict)]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ParsedEarnings":
        """Rebuild a record from its wire form, e.g. a reviewed copy sent back by a client."""
        record = cls(raw_text=str(data.get("rawText") or ""))
        for attr in ("platform", "date", "date_iso", "total_source"):
            value = data.get(WIRE_KEYS[attr])
            setattr(record, attr, str(value) if value is not None else None)
        for attr in MONEY_FIELDS:
            setattr(record, attr, to_amount(data.get(WIRE_KEYS[attr])))
        record.penalties = [
            penalty
            for penalty in (Penalty.from_dict(item) for item in cls._items(data, "penalties"))
            if penalty is not None
        ]
        record.ratings = [
            rating
            for rating in (Rating.from_dict(item) for item in cls._items(data, "ratings"))
            if rating is not None
        ]
        return record

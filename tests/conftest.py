from typing import Any, Dict, Optional

import pytest

from text_acquisition import DEMO_STATEMENT

CONFIG_VARS = (
    "AI_API_KEY",
    "AI_MODEL",
    "AI_API_URL",
    "AI_API_TIMEOUT",
    "CLOVA_OCR_ENDPOINT",
    "CLOVA_OCR_SECRET",
    "OCR_ENGINE",
    "SAVE_UPLOADS",
    "FAIRNESS_MIN_HOURLY_RATE",
    "FAIRNESS_MAX_PENALTY_RATIO",
    "FAIRNESS_MIN_RATING",
    "FAIRNESS_RATING_DROP",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep a developer's .env from leaking credentials or thresholds into tests."""
    for name in CONFIG_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def statement_text() -> str:
    return DEMO_STATEMENT


class FakeResponse:
    def __init__(self, status_code: int = 200, data: Optional[Dict[str, Any]] = None, text: str = ""):
        self.status_code = status_code
        self._data = data
        self.text = text

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    def json(self) -> Dict[str, Any]:
        if self._data is None:
            raise ValueError("No JSON object could be decoded")
        return self._data

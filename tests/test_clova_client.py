import pytest
import requests
from PIL import Image

import clova_client
from clova_client import clova_available, run_clova_ocr
from errors import OCRError

from conftest import FakeResponse


def word(text, confidence=0.9, line_break=False):
    return {"inferText": text, "inferConfidence": confidence, "lineBreak": line_break}


CLOVA_REPLY = {
    "images": [
        {
            "inferResult": "SUCCESS",
            "fields": [
                word("Base", 0.9),
                word("Pay:", 0.95),
                word("₹250.00", 0.85, line_break=True),
                word("Rating:", 0.9),
                word("4.8/5", 0.9, line_break=True),
            ],
        }
    ]
}


@pytest.fixture
def configured(monkeypatch):
    monkeypatch.setenv("CLOVA_OCR_ENDPOINT", "https://clova.example/ocr")
    monkeypatch.setenv("CLOVA_OCR_SECRET", "secret")


@pytest.fixture
def screenshot():
    return Image.new("RGB", (40, 80), "white")


def test_available_needs_endpoint_and_secret(monkeypatch):
    assert clova_available() is False
    monkeypatch.setenv("CLOVA_OCR_ENDPOINT", "https://clova.example/ocr")
    assert clova_available() is False
    monkeypatch.setenv("CLOVA_OCR_SECRET", "secret")
    assert clova_available() is True


def test_not_configured(screenshot):
    with pytest.raises(OCRError, match="not configured"):
        run_clova_ocr(screenshot)


def test_rows_are_rebuilt_from_words(monkeypatch, configured, screenshot):
    captured = {}

    def fake_post(url, headers=None, files=None, timeout=None):
        captured.update(url=url, headers=headers, files=files, timeout=timeout)
        return FakeResponse(data=CLOVA_REPLY)

    monkeypatch.setattr(clova_client.requests, "post", fake_post)
    result = run_clova_ocr(screenshot)

    assert result["raw_text"] == "Base Pay: ₹250.00\nRating: 4.8/5"
    assert [line["text"] for line in result["lines"]] == ["Base Pay: ₹250.00", "Rating: 4.8/5"]
    assert result["lines"][0]["confidence"] == pytest.approx(0.9)
    assert result["metadata"] == {"engine": "clova", "inferResult": ["SUCCESS"]}

    assert captured["url"] == "https://clova.example/ocr"
    assert captured["headers"] == {"X-OCR-SECRET": "secret"}
    assert set(captured["files"]) == {"file", "message"}
    assert captured["timeout"] == 15.0


def test_words_without_line_break_flag_stand_alone(monkeypatch, configured, screenshot):
    reply = {"images": [{"fields": [{"inferText": "Bonus:"}, {"inferText": "100"}]}]}
    monkeypatch.setattr(clova_client.requests, "post", lambda *a, **k: FakeResponse(data=reply))
    result = run_clova_ocr(screenshot)
    assert result["raw_text"] == "Bonus:\n100"


def test_http_failure(monkeypatch, configured, screenshot):
    monkeypatch.setattr(clova_client.requests, "post", lambda *a, **k: FakeResponse(status_code=401, data={}))
    with pytest.raises(OCRError, match="401"):
        run_clova_ocr(screenshot)


def test_unreachable(monkeypatch, configured, screenshot):
    def fake_post(*args, **kwargs):
        raise requests.Timeout("timed out")

    monkeypatch.setattr(clova_client.requests, "post", fake_post)
    with pytest.raises(OCRError, match="unreachable"):
        run_clova_ocr(screenshot)


def test_empty_response(monkeypatch, configured, screenshot):
    monkeypatch.setattr(clova_client.requests, "post", lambda *a, **k: FakeResponse(data={"images": [{"fields": []}]}))
    with pytest.raises(OCRError, match="no text"):
        run_clova_ocr(screenshot)

import io
import logging
import os
import uuid
from typing import Any, Dict

from dotenv import load_dotenv
from flask import Flask, jsonify, request
from PIL import Image, UnidentifiedImageError
from werkzeug.utils import secure_filename

from earnings import parse_earnings
from errors import OCRError
from fairness import audit_earnings
from text_acquisition import extract_text

APP_ROOT = os.path.dirname(os.path.abspath(__file__))
UPLOAD_DIR = os.path.join(APP_ROOT, "uploads")
load_dotenv(os.path.join(APP_ROOT, ".env"))

logger = logging.getLogger(__name__)


def _context_from(source: Dict[str, Any]) -> Dict[str, Any]:
    platform = source.get("platform")
    if isinstance(platform, str) and platform.strip():
        return {"platform": platform.strip()}
    return {}


def build_response(ocr_result: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
    raw_text = ocr_result.get("raw_text") or ""
    parsed = parse_earnings(raw_text, context)
    return {
        "raw_text": raw_text,
        "lines": ocr_result.get("lines", []),
        "parsed": parsed.to_dict(),
        "debug": ocr_result.get("metadata") or {},
    }


def create_app() -> Flask:
    app = Flask(__name__)

    @app.route("/health", methods=["GET"])
    def health():
        return jsonify({"status": "ok"}), 200

    @app.route("/api/ocr", methods=["POST"])
    def process_screenshot():
        if "file" not in request.files:
            return jsonify({"error": "file field required"}), 400
        file_storage = request.files["file"]
        if file_storage.filename == "":
            return jsonify({"error": "empty filename"}), 400

        filename = secure_filename(file_storage.filename) or f"upload-{uuid.uuid4().hex}"
        buffer = io.BytesIO(file_storage.read())
        try:
            with Image.open(buffer) as img:
                img = img.convert("RGB")
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as exc:
            return jsonify({"error": f"invalid image: {exc}"}), 400

        try:
            ocr_result = extract_text(img)
        except OCRError as exc:
            logger.error("OCR failed for %s: %s", filename, exc)
            return jsonify({"error": f"text extraction failed: {exc}"}), 502

        # Optional: persist upload for debugging (disabled by default).
        if os.getenv("SAVE_UPLOADS", "false").lower() == "true":
            os.makedirs(UPLOAD_DIR, exist_ok=True)
            with open(os.path.join(UPLOAD_DIR, filename), "wb") as out_file:
                out_file.write(buffer.getvalue())

        return jsonify(build_response(ocr_result, _context_from(request.form))), 200

    @app.route("/api/parse", methods=["POST"])
    def parse_text():
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            return jsonify({"error": "JSON object body required"}), 400
        raw_text = body.get("raw_text")
        if not isinstance(raw_text, str):
            return jsonify({"error": "raw_text must be a string"}), 400
        parsed = parse_earnings(raw_text, _context_from(body))
        return jsonify({"parsed": parsed.to_dict()}), 200

    @app.route("/api/audit", methods=["POST"])
    def audit():
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            return jsonify({"error": "JSON object body required"}), 400
        parsed = body.get("parsed")
        if not isinstance(parsed, dict) or not parsed:
            return jsonify({"error": "No parsed data provided for audit."}), 400
        context = body.get("context")
        if not isinstance(context, dict):
            context = {}
        result = audit_earnings(parsed, context)
        return jsonify({"audit": result.to_dict()}), 200

    return app


if __name__ == "__main__":
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    port = int(os.getenv("PORT", "5050"))
    app = create_app()
    app.run(host="0.0.0.0", port=port)

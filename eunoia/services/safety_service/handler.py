"""Safety Service HTTP handler.

Standalone scan endpoint for clients that need a crisis verdict without
going through the conversation service (the voice client scans its
transcripts here before submitting them).

The catalog is built at import time: an invalid catalog raises
ConfigurationError and the service never starts.
"""
import logging
import os
from flask import Flask, request, jsonify

from eunoia.shared.utils import hash_text_for_audit
from .catalog import KeywordCatalog
from .config import SafetyConfig
from .policy import InterventionPolicy
from .scanner import CrisisScanner

logger = logging.getLogger(__name__)

app = Flask(__name__)

config = SafetyConfig.from_env()
catalog = (
    KeywordCatalog.from_json(config.catalog_path)
    if config.catalog_path
    else KeywordCatalog.default()
)
scanner = CrisisScanner(catalog=catalog, scoring=config.scoring)
policy = InterventionPolicy(score_threshold=config.score_threshold)


@app.route("/health", methods=["GET"])
def health():
    """Health check endpoint."""
    return jsonify({
        "status": "healthy",
        "service": "safety-service",
        "catalog_version": catalog.version,
    }), 200


@app.route("/ready", methods=["GET"])
def ready():
    """Readiness check - verifies scanner is initialized."""
    if scanner is None:
        return jsonify({"status": "not_ready", "reason": "scanner_not_initialized"}), 503
    return jsonify({"status": "ready"}), 200


@app.route("/scan", methods=["POST"])
def scan_message():
    """Scan a message for crisis language.

    Request Body:
        {"message": "User message text"}

    Response:
        {
            "scan": {"matched_categories": [...], "match_count": 1,
                     "score": 62.5, "catalog_version": "..."},
            "decision": {"should_trigger": true,
                         "matched_categories": [...],
                         "recommended_resources": [...]}
        }

    Error Handling:
        On an unexpected error the decision fails closed: should_trigger
        is true and the crisis resources are returned.
    """
    data = request.get_json(silent=True)
    if not data:
        logger.warning("SCAN_REQUEST_INVALID", extra={"reason": "empty_body"})
        return jsonify({"error": "Request body required"}), 400
    if not isinstance(data, dict):
        logger.warning("SCAN_REQUEST_INVALID", extra={"reason": "not_an_object"})
        return jsonify({"error": "Request body must be a JSON object"}), 400

    text = data.get("message")
    if not isinstance(text, str):
        logger.warning("SCAN_REQUEST_INVALID", extra={"reason": "missing_message"})
        return jsonify({"error": "Missing required field: message"}), 400

    try:
        result = scanner.scan(text)
        decision = policy.decide(result)
    except Exception as e:
        logger.error(
            "SCAN_ERROR",
            extra={
                "text_hash": hash_text_for_audit(text),
                "error": str(e),
                "error_type": type(e).__name__,
                "action": "FAILING_CLOSED",
            }
        )
        return jsonify({
            "error": "Scanner error - showing crisis resources",
            "decision": policy.fail_closed().to_dict(),
        }), 200

    return jsonify({
        "scan": result.to_dict(),
        "decision": decision.to_dict(),
    }), 200


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    port = int(os.getenv("PORT", "8001"))
    app.run(host="0.0.0.0", port=port, debug=False)

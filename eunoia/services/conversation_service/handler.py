"""Conversation Service HTTP handler.

Session and message endpoints for the web and voice clients. Every user
message goes through ConversationOrchestrator, which scans it before any
reply is generated.
"""
import logging
import os
import random
from flask import Flask, request, jsonify

from eunoia.shared.database import RepositoryError, get_connection_manager
from eunoia.shared.utils import configure_pii_salt
from ..crisis_engine import InMemoryCrisisEventLog, PostgresCrisisEventLog
from ..llm_service import (
    DEFAULT_PERSONA_ID,
    LLMConfig,
    LLMProvider,
    LLMResponder,
    PERSONAS,
    RuleBasedResponder,
    create_llm,
)
from ..safety_service import CrisisScanner, InterventionPolicy, KeywordCatalog, SafetyConfig
from .config import ConversationConfig
from .orchestrator import ConversationOrchestrator, SessionNotFoundError
from .storage import InMemoryConversationStore, PostgresConversationStore

logger = logging.getLogger(__name__)

app = Flask(__name__)

# Configure PII salt
pii_salt = os.getenv("PII_HASH_SALT", "default_dev_salt_change_in_production_32chars")
configure_pii_salt(pii_salt)

config = ConversationConfig.from_env()
safety_config = SafetyConfig.from_env()


def build_responder(config: ConversationConfig):
    """Responder for the configured LLM provider."""
    if config.llm_provider == "rule_based":
        return RuleBasedResponder(rng=random.Random())
    llm = create_llm(LLMConfig(
        provider=LLMProvider(config.llm_provider),
        model_name=config.llm_model,
        endpoint=config.llm_endpoint,
        api_key=config.llm_api_key,
        timeout_seconds=int(config.response_timeout_seconds),
    ))
    return LLMResponder(llm)


if config.storage_backend == "postgres":
    connection_manager = get_connection_manager()
    connection_manager.initialize()
    store = PostgresConversationStore(connection_manager)
    event_log = PostgresCrisisEventLog(connection_manager)
else:
    store = InMemoryConversationStore()
    event_log = InMemoryCrisisEventLog()

catalog = (
    KeywordCatalog.from_json(safety_config.catalog_path)
    if safety_config.catalog_path
    else KeywordCatalog.default()
)

orchestrator = ConversationOrchestrator(
    store=store,
    event_log=event_log,
    responder=build_responder(config),
    scanner=CrisisScanner(catalog=catalog, scoring=safety_config.scoring),
    policy=InterventionPolicy(score_threshold=safety_config.score_threshold),
    response_timeout_seconds=config.response_timeout_seconds,
)


@app.route("/health", methods=["GET"])
def health():
    """Health check endpoint."""
    return jsonify({
        "status": "healthy",
        "service": "conversation-service",
        "storage_backend": config.storage_backend,
        "llm_provider": config.llm_provider,
    }), 200


@app.route("/ready", methods=["GET"])
def ready():
    """Readiness check - verifies storage is reachable."""
    if not store.health_check():
        return jsonify({"status": "not_ready", "reason": "storage_unavailable"}), 503
    return jsonify({"status": "ready"}), 200


@app.route("/api/personas", methods=["GET"])
def list_personas():
    return jsonify({
        "personas": [p.to_dict() for p in PERSONAS.values()],
        "default": DEFAULT_PERSONA_ID,
    }), 200


@app.route("/api/sessions", methods=["POST"])
def create_session():
    """Start a session.

    Request Body:
        {"persona_id": "empathetic", "goals": ["Anxiety"], "user_id": 12}
    """
    data = request.get_json(silent=True)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        return jsonify({"error": "Request body must be a JSON object"}), 400

    persona_id = data.get("persona_id", DEFAULT_PERSONA_ID)
    goals = data.get("goals", [])
    user_id = data.get("user_id")

    if not isinstance(goals, list):
        return jsonify({"error": "goals must be a list"}), 400
    if user_id is not None and not isinstance(user_id, int):
        return jsonify({"error": "user_id must be an integer"}), 400

    try:
        session = orchestrator.start_session(persona_id, goals, user_id)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except RepositoryError as e:
        logger.error("SESSION_CREATE_ERROR", extra={"error": str(e)})
        return jsonify({"error": "Failed to create session"}), 500

    return jsonify(session.to_dict()), 201


@app.route("/api/sessions/<int:session_id>", methods=["GET"])
def get_session(session_id: int):
    try:
        session = orchestrator.get_session(session_id)
    except SessionNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except RepositoryError as e:
        logger.error("SESSION_QUERY_ERROR", extra={"session_id": session_id, "error": str(e)})
        return jsonify({"error": "Failed to load session"}), 500
    return jsonify(session.to_dict()), 200


@app.route("/api/sessions/<int:session_id>/end", methods=["POST"])
def end_session(session_id: int):
    try:
        session = orchestrator.end_session(session_id)
    except SessionNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except RepositoryError as e:
        logger.error("SESSION_END_ERROR", extra={"session_id": session_id, "error": str(e)})
        return jsonify({"error": "Failed to end session"}), 500
    return jsonify(session.to_dict()), 200


@app.route("/api/sessions/<int:session_id>/messages", methods=["GET"])
def list_messages(session_id: int):
    try:
        messages = orchestrator.list_messages(session_id)
    except SessionNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except RepositoryError as e:
        logger.error("MESSAGE_QUERY_ERROR", extra={"session_id": session_id, "error": str(e)})
        return jsonify({"error": "Failed to load messages"}), 500
    return jsonify({"messages": [m.to_dict() for m in messages]}), 200


@app.route("/api/sessions/<int:session_id>/messages", methods=["POST"])
def submit_message(session_id: int):
    """Submit a user message.

    Request Body:
        {"content": "User message text", "is_voice": false}

    Response (no intervention):
        {"message": {...}, "crisis": false, "ai_message": {...}}

    Response (intervention):
        {"message": {...}, "crisis": true,
         "crisis_categories": ["suicidal_ideation"],
         "resources": [{"label": ..., "action": "call", "target": "988"}, ...]}
    """
    data = request.get_json(silent=True)
    if not data:
        return jsonify({"error": "Request body required"}), 400
    if not isinstance(data, dict):
        return jsonify({"error": "Request body must be a JSON object"}), 400

    content = data.get("content")
    if not isinstance(content, str):
        logger.warning(
            "MESSAGE_REQUEST_INVALID",
            extra={"session_id": session_id, "reason": "missing_content"}
        )
        return jsonify({"error": "Missing required field: content"}), 400

    try:
        result = orchestrator.submit_message(
            session_id, content, is_voice=bool(data.get("is_voice", False))
        )
    except SessionNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except RepositoryError as e:
        logger.error("MESSAGE_STORE_ERROR", extra={"session_id": session_id, "error": str(e)})
        return jsonify({"error": "Failed to process message"}), 500

    return jsonify(result.to_dict()), 200


@app.route("/api/sessions/<int:session_id>/crisis", methods=["GET"])
def list_crisis_events(session_id: int):
    try:
        events = orchestrator.list_crisis_events(session_id)
    except SessionNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except RepositoryError as e:
        logger.error("CRISIS_EVENT_QUERY_ERROR", extra={"session_id": session_id, "error": str(e)})
        return jsonify({"error": "Failed to load crisis events"}), 500
    return jsonify({"crisis_events": [event.to_dict() for event in events]}), 200


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    port = int(os.getenv("PORT", "8000"))
    app.run(host="0.0.0.0", port=port, debug=False)

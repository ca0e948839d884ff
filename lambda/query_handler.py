"""Lambda handler for questions — triggered by API Gateway.

Thin wrapper around AnswerSynthesizer. All business logic lives in src/groundrag/.

Routes:
    POST /api/ask         {"query": "..."} → answer, sources, metadata
    GET  /api/ask/health  liveness probe
    GET  /api/ask/stats   uptime and memory
"""

from __future__ import annotations

import json
import logging
import os
import resource
import time
import uuid
from datetime import datetime, timezone
from typing import Any

from groundrag.config import load_settings
from groundrag.pipeline.synthesizer import AnswerSynthesizer

logger = logging.getLogger(__name__)
logger.setLevel(os.getenv("LOG_LEVEL", "INFO"))

MAX_QUERY_LENGTH = 1000

_STARTED_AT = time.monotonic()

# Initialize outside handler for Lambda warm-start reuse
_synthesizer: AnswerSynthesizer | None = None


def _get_synthesizer() -> AnswerSynthesizer:
    global _synthesizer
    if _synthesizer is not None:
        return _synthesizer

    _synthesizer = AnswerSynthesizer.from_settings(load_settings())
    return _synthesizer


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _response(status_code: int, body: dict[str, Any]) -> dict[str, Any]:
    return {
        "statusCode": status_code,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(body),
    }


def health_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """Report liveness and process uptime."""
    return _response(200, {
        "status": "healthy",
        "timestamp": _now(),
        "uptime": round(time.monotonic() - _STARTED_AT, 3),
    })


def stats_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """Report basic process statistics."""
    usage = resource.getrusage(resource.RUSAGE_SELF)
    return _response(200, {
        "status": "operational",
        "timestamp": _now(),
        "uptime": round(time.monotonic() - _STARTED_AT, 3),
        "memory": {"maxRssKb": usage.ru_maxrss},
    })


def handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """Handle API Gateway request — validate query, run pipeline, return JSON."""
    path = (event.get("rawPath") or event.get("path") or "").rstrip("/")
    method = event.get("httpMethod") or event.get("requestContext", {}).get("http", {}).get("method")

    if method == "GET":
        if path.endswith("/health"):
            return health_handler(event, context)
        if path.endswith("/stats"):
            return stats_handler(event, context)
    if method not in (None, "POST"):
        return _response(405, {"error": f"Method {method} not allowed"})

    request_id = str(uuid.uuid4())
    started = time.perf_counter()

    try:
        body = json.loads(event.get("body") or "{}")
    except (json.JSONDecodeError, TypeError):
        body = {}

    query = body.get("query") if isinstance(body, dict) else None

    if not isinstance(query, str) or not query.strip():
        return _response(400, {
            "error": "Query is required and must be a non-empty string",
            "requestId": request_id,
        })

    if len(query) > MAX_QUERY_LENGTH:
        return _response(400, {
            "error": f"Query is too long. Maximum length is {MAX_QUERY_LENGTH} characters.",
            "requestId": request_id,
        })

    logger.info("Received query request %s: %s", request_id, query[:100])

    try:
        outcome = _get_synthesizer().answer_query(query.strip(), request_id=request_id)
    except Exception:
        logger.exception("Error processing query request %s", request_id)
        return _response(500, {
            "error": "Internal server error. Please try again later.",
            "requestId": request_id,
            "metadata": {
                "timestamp": _now(),
                "responseTime": int((time.perf_counter() - started) * 1000),
            },
        })

    payload = outcome.to_dict()
    payload["metadata"].update({"requestId": request_id, "timestamp": _now()})

    logger.info(
        "Query request %s done in %dms (answer=%s, sources=%d, top_score=%.4f)",
        request_id,
        int((time.perf_counter() - started) * 1000),
        outcome.answer is not None,
        len(outcome.sources),
        outcome.metadata.top_score,
    )
    return _response(200, payload)

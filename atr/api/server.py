"""HTTP entry point for ingestion.

Validates the request body before any core logic runs, then hands off to
``IngestPipeline``. Routes:

- ``POST /ingest`` — ``{"conversation_id": int | null, "text": str}``
- ``GET /health`` — liveness check
"""

from __future__ import annotations

import logging
from typing import Any

import aiosqlite
import anthropic
from aiohttp import web

from atr.config import settings
from atr.pipeline import IngestPipeline
from atr.store import ConversationNotFoundError

logger = logging.getLogger(__name__)

PIPELINE_KEY = web.AppKey("pipeline", IngestPipeline)

# SQLite INTEGER is a signed 64-bit value
_MIN_ID = -(2**63)
_MAX_ID = 2**63 - 1


def _error(message: str, status: int) -> web.Response:
    return web.json_response({"error": message}, status=status)


async def _handle_ingest(request: web.Request) -> web.Response:
    """Route POST /ingest to the pipeline."""
    try:
        payload: Any = await request.json()
    except Exception:
        logger.warning("Ingest bad request: invalid JSON")
        return _error("invalid JSON", 400)
    if not isinstance(payload, dict):
        return _error("body must be a JSON object", 400)

    text = payload.get("text")
    if not isinstance(text, str) or not text.strip():
        return _error("text is required", 422)

    conversation_id = payload.get("conversation_id")
    if conversation_id is not None and (
        isinstance(conversation_id, bool)
        or not isinstance(conversation_id, int)
        or not _MIN_ID <= conversation_id <= _MAX_ID
    ):
        return _error("conversation_id must be an integer", 422)

    pipeline = request.app[PIPELINE_KEY]
    try:
        result = await pipeline.ingest(text, conversation_id=conversation_id)
    except ConversationNotFoundError as exc:
        logger.warning("Ingest 404: %s", exc)
        return _error(str(exc), 404)
    except anthropic.APIError:
        logger.exception("Model gateway failed (conversation=%s)", conversation_id)
        return _error("model gateway error", 502)
    except aiosqlite.Error:
        logger.exception("Store failure during ingest (conversation=%s)", conversation_id)
        return _error("storage error", 500)

    return web.json_response(result.to_dict())


async def _health(request: web.Request) -> web.Response:
    """GET /health — basic liveness check."""
    return web.json_response({"status": "ok"})


def create_web_app(pipeline: IngestPipeline | None = None) -> web.Application:
    """Build the aiohttp Application with routes."""
    app = web.Application()
    app[PIPELINE_KEY] = pipeline or IngestPipeline()
    app.router.add_get("/health", _health)
    app.router.add_post("/ingest", _handle_ingest)
    return app


def run() -> None:
    """Serve the API until interrupted."""
    app = create_web_app()
    logger.info("ATR listening on %s:%d", settings.server_host, settings.server_port)
    web.run_app(app, host=settings.server_host, port=settings.server_port, print=None)

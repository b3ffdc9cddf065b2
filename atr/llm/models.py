"""Friendly model aliases for the extraction model setting."""

import logging

logger = logging.getLogger(__name__)

MODEL_MAP: dict[str, str] = {
    "haiku": "claude-haiku-4-5-20251001",
    "sonnet": "claude-sonnet-4-5-20250929",
    "opus": "claude-opus-4-6-20250612",
}


def resolve_model(name_or_id: str) -> str:
    """Resolve a friendly alias to a full model ID.

    Anything that is not an alias is assumed to already be a model ID and is
    returned unchanged.
    """
    return MODEL_MAP.get(name_or_id.strip().lower(), name_or_id)

"""
Known model identifiers.
"""

from __future__ import annotations

from enum import Enum


class ModelID(str, Enum):
    """Model identifiers accepted by the Messages API."""

    HAIKU = "claude-3-haiku-20240307"
    SONNET = "claude-3-7-sonnet-20250219"
    OPUS = "claude-3-opus-20240229"
    SONNET_OLD = "claude-3-5-sonnet-20240620"


_MODEL_NAMES: dict[str, ModelID] = {
    "haiku": ModelID.HAIKU,
    "sonnet": ModelID.SONNET,
    "opus": ModelID.OPUS,
    "sonnet-old": ModelID.SONNET_OLD,
}


def get_model_id(name: str) -> ModelID | None:
    """Look up a model identifier by short name or full identifier.

    Args:
        name: Short name (e.g. "sonnet") or a full model identifier

    Returns:
        The matching ModelID, or None if the name is unknown
    """
    key = name.strip().lower()
    if key in _MODEL_NAMES:
        return _MODEL_NAMES[key]
    try:
        return ModelID(key)
    except ValueError:
        return None


def list_models() -> list[ModelID]:
    """Return every known model identifier."""
    return list(ModelID)

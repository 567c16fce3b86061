"""Human-readable names for known Groq model ids."""

from __future__ import annotations

_DISPLAY_NAMES: dict[str, str] = {
    "mixtral-8x7b-32768": "Mixtral 8x7B (32K context)",
    "llama2-70b-4096": "LLaMA2 70B (4K context)",
    "gemma-7b-it": "Gemma 7B-IT",
    "llama3-70b-8192": "LLaMA3 70B (8K context)",
    "llama3-8b-8192": "LLaMA3 8B (8K context)",
}

_EXCLUDED_ID_MARKERS = ("test", "deprecated")


def get_display_name(model_id: str) -> str:
    """Map a provider id to its display name, falling back to the raw id."""
    return _DISPLAY_NAMES.get(model_id, model_id)


def is_listable_model(model_id: str) -> bool:
    """Hide test and deprecated models (case-sensitive substring match)."""
    return not any(marker in model_id for marker in _EXCLUDED_ID_MARKERS)

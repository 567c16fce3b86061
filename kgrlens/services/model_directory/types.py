"""Domain types for the model directory."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(slots=True)
class ModelDescriptor:
    """One selectable LLM model."""

    id: str
    name: str
    description: str | None = None
    created: int | None = None
    owned_by: str | None = None
    root: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize descriptor to JSON-compatible dict."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "created": self.created,
            "owned_by": self.owned_by,
            "root": self.root,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "ModelDescriptor":
        """Deserialize descriptor payload."""
        model_id = str(payload.get("id", ""))
        created = payload.get("created")
        return cls(
            id=model_id,
            name=str(payload.get("name") or model_id),
            description=_optional_str(payload.get("description")),
            created=int(created) if isinstance(created, int | float) else None,
            owned_by=_optional_str(payload.get("owned_by")),
            root=_optional_str(payload.get("root")),
        )


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)

"""
Entity extraction document (input contract).

Structured output of an external document-understanding service: typed,
confidence-scored spans with optional nested properties. The pipeline only
reads this shape; it never calls the extraction service itself.

Accepted dictionary layout (camelCase as emitted by Document AI, snake_case
also accepted):

    {
        "documentType": "bank_statement",
        "text": "...",
        "entities": [
            {
                "type": "transaction",
                "mentionText": "...",
                "confidence": 0.93,
                "normalizedValue": {"text": "2024-01-05"},
                "properties": [...]
            }
        ]
    }
"""

from dataclasses import dataclass, field
from typing import Any, Optional

DOCUMENT_TYPES = ("bank_statement", "invoice", "receipt")


def _pick(data: dict, *keys: str) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return None


@dataclass
class Entity:
    """A single typed span."""

    type: str = ""
    mention_text: str = ""
    confidence: Optional[float] = None
    normalized_text: Optional[str] = None
    # Document AI dateValue: {"year": 2024, "month": 1, "day": 5}
    date_value: Optional[dict[str, int]] = None
    properties: list["Entity"] = field(default_factory=list)

    @property
    def type_key(self) -> str:
        """Lower-cased type without any "parent/" prefix."""
        return (self.type or "").lower().rsplit("/", 1)[-1]

    @classmethod
    def from_dict(cls, data: dict) -> "Entity":
        normalized = _pick(data, "normalizedValue", "normalized_value") or {}
        confidence = data.get("confidence")
        return cls(
            type=data.get("type") or "",
            mention_text=_pick(data, "mentionText", "mention_text") or "",
            confidence=float(confidence) if confidence is not None else None,
            normalized_text=normalized.get("text"),
            date_value=_pick(normalized, "dateValue", "date_value"),
            properties=[cls.from_dict(p) for p in (data.get("properties") or [])],
        )


@dataclass
class EntityDocument:
    """Entity extraction result for one document."""

    document_type: str = "bank_statement"
    entities: list[Entity] = field(default_factory=list)
    text: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "EntityDocument":
        document_type = _pick(data, "documentType", "document_type") or "bank_statement"
        if document_type not in DOCUMENT_TYPES:
            raise ValueError(
                f"documentType must be one of {', '.join(DOCUMENT_TYPES)}, got: {document_type}"
            )
        return cls(
            document_type=document_type,
            entities=[Entity.from_dict(e) for e in (data.get("entities") or [])],
            text=data.get("text"),
        )

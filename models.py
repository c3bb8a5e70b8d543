"""Shared dataclasses for the chat surface and the remote APIs it calls."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

ROLES = ("user", "assistant")


@dataclass(frozen=True)
class ChatMessage:
    """A single conversation turn as sent to the completion endpoint."""

    role: str
    content: str

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "ChatMessage":
        role = str(payload.get("role") or "assistant")
        if role not in ROLES:
            role = "assistant"
        content = payload.get("content")
        return cls(role=role, content=content if isinstance(content, str) else "")

    def asdict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class QuotaRecord:
    """Persisted daily counter for one limited action."""

    count: int
    date: str
    last_update: int

    @classmethod
    def from_dict(cls, payload: object) -> "QuotaRecord":
        if not isinstance(payload, Mapping):
            raise ValueError("quota record must be an object")
        count = payload.get("count")
        date = payload.get("date")
        if isinstance(count, bool) or not isinstance(count, int):
            raise ValueError(f"invalid quota count: {count!r}")
        if not isinstance(date, str):
            raise ValueError(f"invalid quota date: {date!r}")
        last_update = payload.get("lastUpdate")
        if isinstance(last_update, bool) or not isinstance(last_update, (int, float)):
            last_update = 0
        return cls(count=count, date=date, last_update=int(last_update))

    def asdict(self) -> dict[str, Any]:
        return {"count": self.count, "date": self.date, "lastUpdate": self.last_update}


@dataclass(frozen=True)
class Attachment:
    """A document or analysed image used as extra context for the assistant."""

    name: str
    content: str
    mime: str
    preview: bytes | None = None
    analysis: str | None = None

    @property
    def is_image(self) -> bool:
        return self.mime.startswith("image/")


@dataclass(frozen=True)
class Prediction:
    """One label returned by an image classifier."""

    class_name: str
    probability: float

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Prediction":
        name = payload.get("className") or payload.get("class_name") or payload.get("label") or "unknown"
        raw = payload.get("probability", payload.get("score", 0.0))
        try:
            probability = float(raw)
        except (TypeError, ValueError):
            probability = 0.0
        return cls(class_name=str(name), probability=probability)


@dataclass(frozen=True)
class PlantMatch:
    """Candidate species returned by the plant identification API."""

    scientific_name: str
    family: str
    genus: str
    score: float
    common_names: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "PlantMatch":
        species = payload.get("species") if isinstance(payload.get("species"), Mapping) else {}
        family = species.get("family") if isinstance(species.get("family"), Mapping) else {}
        genus = species.get("genus") if isinstance(species.get("genus"), Mapping) else {}
        names_field = species.get("commonNames") or []
        common_names: tuple[str, ...] = ()
        if isinstance(names_field, Sequence) and not isinstance(names_field, str):
            common_names = tuple(str(name) for name in names_field if name)
        score_raw = payload.get("score")
        score = float(score_raw) if isinstance(score_raw, (int, float)) else 0.0
        return cls(
            scientific_name=str(species.get("scientificNameWithoutAuthor") or "unknown species"),
            family=str(family.get("scientificNameWithoutAuthor") or "unknown"),
            genus=str(genus.get("scientificNameWithoutAuthor") or "unknown"),
            score=score,
            common_names=common_names,
        )


__all__ = [
    "Attachment",
    "ChatMessage",
    "PlantMatch",
    "Prediction",
    "QuotaRecord",
    "ROLES",
]

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import time
import uuid

from practice_engine.persona import VoiceStyle


class ObjectionCategory(str, Enum):
    PRICE = "Price"
    TIMING = "Timing"
    TRUST = "Trust"
    AUTHORITY = "Authority"
    COMPETITION = "Competition"
    NEED = "Need"

    @classmethod
    def parse(cls, value) -> "ObjectionCategory":
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        for member in cls:
            if member.value.lower() == text:
                return member
        raise ValueError(f"Unknown objection category: {value!r}")


class Difficulty(str, Enum):
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"

    @classmethod
    def parse(cls, value) -> "Difficulty":
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        for member in cls:
            if member.value.lower() == text:
                return member
        raise ValueError(f"Unknown difficulty: {value!r}")


class Sender(str, Enum):
    USER = "user"
    COUNTERPART = "counterpart"


@dataclass(frozen=True)
class Scenario:
    """
    One practice round's setup. Enum fields accept their string names and
    are validated on construction.
    """
    objection_category: ObjectionCategory
    difficulty: Difficulty = Difficulty.MEDIUM
    industry: str = "SaaS"
    custom_objection_text: str | None = None
    persona: VoiceStyle = VoiceStyle.FRIENDLY

    def __post_init__(self):
        object.__setattr__(self, "objection_category", ObjectionCategory.parse(self.objection_category))
        object.__setattr__(self, "difficulty", Difficulty.parse(self.difficulty))
        object.__setattr__(self, "persona", VoiceStyle.parse(self.persona))
        object.__setattr__(self, "industry", str(self.industry or "SaaS").strip() or "SaaS")
        custom = str(self.custom_objection_text or "").strip()
        object.__setattr__(self, "custom_objection_text", custom or None)

    @classmethod
    def from_dict(cls, data: dict) -> "Scenario":
        payload = dict(data or {})
        category = payload.get("objection_category", payload.get("objectionCategory", payload.get("objection")))
        return cls(
            objection_category=category,
            difficulty=payload.get("difficulty", Difficulty.MEDIUM),
            industry=payload.get("industry", "SaaS"),
            custom_objection_text=payload.get("custom_objection_text", payload.get("customObjectionText")),
            persona=payload.get("persona", payload.get("voice_style", VoiceStyle.FRIENDLY)),
        )

    def to_dict(self) -> dict:
        return {
            "objection_category": self.objection_category.value,
            "difficulty": self.difficulty.value,
            "industry": self.industry,
            "custom_objection_text": self.custom_objection_text,
            "persona": self.persona.value,
        }


@dataclass(frozen=True)
class Message:
    sender: Sender
    text: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sender": self.sender.value,
            "text": self.text,
            "timestamp": self.timestamp,
        }

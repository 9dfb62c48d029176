from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class VoiceStyle(str, Enum):
    FRIENDLY = "friendly"
    ASSERTIVE = "assertive"
    SKEPTICAL = "skeptical"
    RUSHED = "rushed"

    @classmethod
    def parse(cls, value) -> "VoiceStyle":
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        for member in cls:
            if member.value == text:
                return member
        raise ValueError(f"Unknown voice style: {value!r}")


@dataclass(frozen=True)
class PersonaProfile:
    voice_style: VoiceStyle
    name: str
    description: str
    skepticism_level: float
    patience_level: float
    demands_proof: bool
    cuts_small_talk: bool


@dataclass(frozen=True)
class PersonaDirective:
    name: str
    voice_style: VoiceStyle
    description: str
    behavior_rules: list[str]


FRIENDLY = PersonaProfile(
    voice_style=VoiceStyle.FRIENDLY,
    name="Alex",
    description="Alex, a friendly and approachable customer",
    skepticism_level=0.3,
    patience_level=0.8,
    demands_proof=False,
    cuts_small_talk=False,
)

ASSERTIVE = PersonaProfile(
    voice_style=VoiceStyle.ASSERTIVE,
    name="Jordan",
    description="Jordan, a confident and direct decision-maker",
    skepticism_level=0.6,
    patience_level=0.5,
    demands_proof=True,
    cuts_small_talk=True,
)

SKEPTICAL = PersonaProfile(
    voice_style=VoiceStyle.SKEPTICAL,
    name="Morgan",
    description="Morgan, a cautious and questioning prospect",
    skepticism_level=0.9,
    patience_level=0.6,
    demands_proof=True,
    cuts_small_talk=False,
)

RUSHED = PersonaProfile(
    voice_style=VoiceStyle.RUSHED,
    name="Taylor",
    description="Taylor, a busy executive with limited time",
    skepticism_level=0.5,
    patience_level=0.2,
    demands_proof=False,
    cuts_small_talk=True,
)

PERSONAS: dict[VoiceStyle, PersonaProfile] = {
    VoiceStyle.FRIENDLY: FRIENDLY,
    VoiceStyle.ASSERTIVE: ASSERTIVE,
    VoiceStyle.SKEPTICAL: SKEPTICAL,
    VoiceStyle.RUSHED: RUSHED,
}


def persona_for(style) -> PersonaProfile:
    return PERSONAS[VoiceStyle.parse(style)]


def build_directive(profile: PersonaProfile, difficulty: str = "medium") -> PersonaDirective:
    level = str(difficulty or "medium").strip().lower()
    skepticism = profile.skepticism_level
    if level == "hard":
        skepticism = min(1.0, skepticism + 0.2)
    elif level == "easy":
        skepticism = max(0.0, skepticism - 0.2)

    behavior_rules: list[str] = []
    if skepticism >= 0.7:
        behavior_rules.append("Push back on generic claims before accepting them")
    if profile.demands_proof:
        behavior_rules.append("Ask for concrete evidence, numbers, or customer examples")
    if profile.cuts_small_talk:
        behavior_rules.append("Keep replies short and steer back to the business point")
    if profile.patience_level <= 0.3:
        behavior_rules.append("Mention that your time is limited")
    if level == "easy":
        behavior_rules.append("Be receptive once your concern is acknowledged")
    behavior_rules.append("Stay in character as the prospect, never as a coach")

    return PersonaDirective(
        name=profile.name,
        voice_style=profile.voice_style,
        description=profile.description,
        behavior_rules=behavior_rules,
    )

from practice_engine.persona.engine import (
    PersonaProfile,
    PersonaDirective,
    VoiceStyle,
    PERSONAS,
    FRIENDLY,
    ASSERTIVE,
    SKEPTICAL,
    RUSHED,
    build_directive,
    persona_for,
)

__all__ = [
    "PersonaProfile",
    "PersonaDirective",
    "VoiceStyle",
    "PERSONAS",
    "FRIENDLY",
    "ASSERTIVE",
    "SKEPTICAL",
    "RUSHED",
    "build_directive",
    "persona_for",
]

from __future__ import annotations

import re

from practice_engine.models import Message, Scenario, Sender
from practice_engine.persona import PersonaDirective


# ----------- Prospect Prompt -----------

PROSPECT_PROMPT = """
You are {description}, a potential customer in a sales roleplay.

Your character:
- Industry: {industry}
- Primary objection type: {objection}
- Difficulty level: {difficulty}
- Personality: {voice_style}

{turn_guidance}

Behaviour:
{behavior_rules}
- Be realistic and challenging but not impossible to overcome.
- Base your reply on the salesperson's actual words and approach.
- Match the {difficulty} difficulty level.
{custom_context}
Keep replies conversational and under 2-3 sentences.
Always respond as the prospect, never as a coach giving meta-feedback.
"""

FIRST_TURN_GUIDANCE = (
    "This is the first interaction. Present your initial objection as a realistic "
    "{objection_lower} concern in the {industry} industry."
)

LATER_TURN_GUIDANCE = """The salesperson has responded to your objection. Weigh their reply for:
- empathy or acknowledgment of your concern
- specifics (examples, case studies, data)
- clarity of the value proposition
- discovery questions
- length and depth

Then react as the prospect would:
- empathy plus specifics: be more receptive, maybe raise a follow-up concern
- generic or short: push back and ask for concrete evidence
- pitching without acknowledgment: feel unheard and resist
- good questions: open up and give helpful context"""

_PERSONA_PREFIX = re.compile(r"^[^:]+:\s*")


def build_system_prompt(scenario: Scenario, directive: PersonaDirective, is_first_turn: bool) -> str:
    if is_first_turn:
        guidance = FIRST_TURN_GUIDANCE.format(
            objection_lower=scenario.objection_category.value.lower(),
            industry=scenario.industry,
        )
    else:
        guidance = LATER_TURN_GUIDANCE

    custom = ""
    if scenario.custom_objection_text:
        custom = f"Additional context: {scenario.custom_objection_text}\n"

    return PROSPECT_PROMPT.format(
        description=directive.description,
        industry=scenario.industry,
        objection=scenario.objection_category.value,
        difficulty=scenario.difficulty.value,
        voice_style=directive.voice_style.value,
        turn_guidance=guidance,
        behavior_rules="\n".join(f"- {rule}." for rule in directive.behavior_rules),
        custom_context=custom,
    ).strip()


def strip_persona_prefix(text: str) -> str:
    return _PERSONA_PREFIX.sub("", str(text or ""), count=1).strip()


def build_messages(history: list[Message]) -> list[dict[str, str]]:
    """Map session history onto chat roles; the counterpart speaks as assistant."""
    messages: list[dict[str, str]] = []
    for message in history or []:
        if message.sender == Sender.USER:
            messages.append({"role": "user", "content": str(message.text or "")})
        else:
            messages.append({"role": "assistant", "content": strip_persona_prefix(message.text)})
    return [item for item in messages if item["content"]]

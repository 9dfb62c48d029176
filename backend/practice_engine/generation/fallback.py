from __future__ import annotations

import random
import re

from practice_engine.models import Message, ObjectionCategory, Scenario, Sender
from practice_engine.persona import persona_for


SAFETY_REFUSAL = (
    "Let's keep this conversation focused on the business discussion. "
    "Could you walk me through how your solution fits our situation?"
)

REPHRASE_MESSAGE = "Sorry, let me rephrase that. What would you say is the main benefit for a team like ours?"


OPENING_OBJECTIONS: dict[ObjectionCategory, list[str]] = {
    ObjectionCategory.PRICE: [
        "Your solution looks interesting, but honestly it's priced higher than what we were expecting to pay. We have other options that cost less.",
        "I like what I've seen, but the cost is hard to justify with our current budget.",
        "This is more expensive than anything we've used before. Why should we pay a premium?",
    ],
    ObjectionCategory.TIMING: [
        "This sounds useful, but the timing just isn't right for us. Maybe next quarter.",
        "We're in the middle of another rollout right now, so I can't see us taking this on soon.",
        "I don't see why we need to decide on this quickly. Can we revisit later in the year?",
    ],
    ObjectionCategory.TRUST: [
        "I'm not familiar with your company's track record. How do I know this will actually work for us?",
        "We've been burned by vendors overpromising before. Why should I believe your claims?",
        "You're a fairly new name to me. Who else like us is using this successfully?",
    ],
    ObjectionCategory.AUTHORITY: [
        "This isn't really my call. I'd have to run it by my director and the finance team.",
        "I like it, but any purchase like this needs sign-off from leadership, and they're hard to convince.",
        "I'm not the decision-maker here. I'm just gathering information for the committee.",
    ],
    ObjectionCategory.COMPETITION: [
        "We already use a competitor, and honestly they're doing a decent job for us.",
        "I'm also talking to two of your competitors, and their offers look pretty similar to yours.",
        "Why would we switch when our current provider already covers most of this?",
    ],
    ObjectionCategory.NEED: [
        "I'm not convinced we actually need this. Our current process works well enough.",
        "I don't really see the problem this solves for us.",
        "We've managed without something like this so far. What would really change?",
    ],
}

# Bucket order matters: the first bucket whose keywords appear wins.
KEYWORD_BUCKETS: list[tuple[str, tuple[str, ...]]] = [
    ("budget", ("budget", "cost", "price", "pricing", "expensive")),
    ("timeline", ("timeline", "when", "time", "schedule", "deadline")),
    ("proof", ("example", "case study", "case studies", "reference")),
    ("value", ("roi", "value", "return on investment", "payback")),
    ("question", ("?",)),
]

# Each bucket has a reply for its matching objection category and a default.
BUCKET_REBUTTALS: dict[str, dict[ObjectionCategory | None, str]] = {
    "budget": {
        ObjectionCategory.PRICE: "Even so, the number is still above what we set aside. What exactly would we get for the extra spend compared with the cheaper options?",
        None: "Budget is always a concern for us. What specific costs should I be expecting beyond the license itself?",
    },
    "timeline": {
        ObjectionCategory.TIMING: "I hear you, but my team is stretched thin right now. What would implementation actually demand from us in the next few months?",
        None: "Timing matters. How long does it usually take before a team like ours sees results?",
    },
    "proof": {
        ObjectionCategory.TRUST: "Examples are nice, but I'd want to talk to a customer directly. Can you connect me with someone in our industry?",
        None: "That example helps a bit, but how similar was that company to us, really?",
    },
    "value": {
        ObjectionCategory.NEED: "You keep mentioning value, but I still don't see which of our problems this fixes. Can you be specific?",
        ObjectionCategory.PRICE: "ROI projections always look great on paper. How did you calculate those numbers?",
        None: "I'd need to see that return laid out clearly before I could take it to anyone.",
    },
    "question": {
        ObjectionCategory.AUTHORITY: "Good question. Honestly, the final decision sits with our leadership team. What would you need from them to move forward?",
        None: "Fair question. Right now we're mostly weighing risk against the effort of changing what we do today.",
    },
}

GENERIC_REBUTTALS: dict[ObjectionCategory, list[str]] = {
    ObjectionCategory.PRICE: [
        "I understand, but I still can't get past the price. Can you help me justify it?",
        "That's fine, but the cheaper alternatives still look good enough to us.",
    ],
    ObjectionCategory.TIMING: [
        "Maybe, but I still think this is a conversation for later in the year.",
        "I get it, but we just don't have the bandwidth to start something new right now.",
    ],
    ObjectionCategory.TRUST: [
        "I'm still not sure I can trust that. What guarantees do you offer?",
        "That sounds good in theory, but how does it work in practice?",
    ],
    ObjectionCategory.AUTHORITY: [
        "I'd still need to convince my boss. What would I tell them?",
        "I can pass this along, but I can't promise anything without leadership on board.",
    ],
    ObjectionCategory.COMPETITION: [
        "Our current vendor says the same thing. What makes you actually different?",
        "I'm still not seeing a big enough reason to switch providers.",
    ],
    ObjectionCategory.NEED: [
        "I'm still not convinced this is something we need right now.",
        "Our team seems fine with how things work today. Why change?",
    ],
}

INDUSTRY_INTROS: dict[str, str] = {
    "SaaS": "Hi there! I'm considering a new software solution for my team. I've heard about your product, but I'm not convinced it's worth the investment.",
    "Retail": "Hello, I'm browsing today and noticed your product. I'm interested but have a few concerns before making a purchase.",
    "B2B Services": "Good day, I'm the procurement manager at Acme Corp. We're evaluating several service providers in your space.",
    "Healthcare": "Hi, our medical practice is looking to upgrade our systems. I've been tasked with reviewing options.",
    "Finance": "Hello, I'm looking to possibly switch financial services. What makes your offering different?",
    "Real Estate": "Hi there, I'm in the market for a new property, but I'm not in a rush to make a decision.",
}

OBJECTION_HINTS: dict[ObjectionCategory, str] = {
    ObjectionCategory.PRICE: "though I'm concerned about the cost",
    ObjectionCategory.TIMING: "but this isn't the right time for us",
    ObjectionCategory.TRUST: "though I'm not familiar with your company's track record",
    ObjectionCategory.AUTHORITY: "though I'm not the only one who decides",
    ObjectionCategory.COMPETITION: "and I'm also talking to your competitors",
    ObjectionCategory.NEED: "though I'm not convinced we need this solution",
}


def is_first_turn(history: list[Message]) -> bool:
    return not any(message.sender == Sender.USER for message in history or [])


def _mentions(text: str, keyword: str) -> bool:
    if not keyword[0].isalnum():
        return keyword in text
    return re.search(rf"(?<![a-z0-9']){re.escape(keyword)}(?![a-z0-9'])", text) is not None


def classify_bucket(user_input: str) -> str | None:
    text = str(user_input or "").lower()
    for bucket, keywords in KEYWORD_BUCKETS:
        if any(_mentions(text, keyword) for keyword in keywords):
            return bucket
    return None


def opening_objection(scenario: Scenario, rng: random.Random) -> str:
    if scenario.custom_objection_text:
        return scenario.custom_objection_text
    return rng.choice(OPENING_OBJECTIONS[scenario.objection_category])


def rebuttal(user_input: str, scenario: Scenario, rng: random.Random) -> str:
    bucket = classify_bucket(user_input)
    if bucket is None:
        return rng.choice(GENERIC_REBUTTALS[scenario.objection_category])
    replies = BUCKET_REBUTTALS[bucket]
    return replies.get(scenario.objection_category, replies[None])


def fallback_reply(user_input: str, scenario: Scenario, history: list[Message], rng: random.Random) -> str:
    if is_first_turn(history):
        return opening_objection(scenario, rng)
    return rebuttal(user_input, scenario, rng)


def scenario_intro(scenario: Scenario) -> str:
    persona = persona_for(scenario.persona)
    intro = INDUSTRY_INTROS.get(scenario.industry, INDUSTRY_INTROS["SaaS"])
    return f"{persona.name}: {intro} I'm interested to learn more, {OBJECTION_HINTS[scenario.objection_category]}."

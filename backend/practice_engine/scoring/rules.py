"""
Scoring heuristics.
Every threshold and phrase list used by the scorer lives here.
"""

from practice_engine.models import Difficulty, ObjectionCategory

# Clarity
CLARITY_BASE = 3
CLARITY_WORDS_PER_POINT = 15
CLARITY_MIN = 3

# Sub-score bounds
SCORE_MIN = 1
SCORE_MAX = 10

# Overall weights
WEIGHT_CLARITY = 0.3
WEIGHT_CONFIDENCE = 0.3
WEIGHT_HANDLING = 0.2
WEIGHT_VOCABULARY = 0.2

MAX_HIGHLIGHTS = 3

# Word-count thresholds
SUBSTANCE_MIN_WORDS = 30
EXTENDED_MIN_WORDS = 60
LONG_WORD_MIN_CHARS = 6
DIVERSITY_RATIO = 0.7

DIFFICULTY_ADJUSTMENT = {
    Difficulty.EASY: 1,
    Difficulty.MEDIUM: 0,
    Difficulty.HARD: -1,
}

EMPATHY_PHRASES = (
    "i understand",
    "i hear you",
    "that makes sense",
    "great question",
    "fair point",
    "i appreciate",
    "i get that",
    "understandable",
    "totally understand",
    "you're right",
)

HEDGE_WORDS = (
    "um",
    "uh",
    "maybe",
    "i think",
    "not sure",
    "kind of",
    "sort of",
    "i guess",
    "probably",
    "hopefully",
)

PROOF_MARKERS = (
    "for example",
    "for instance",
    "case study",
    "customers",
    "clients",
    "data",
    "percent",
    "%",
    "proven",
    "testimonial",
)

VALUE_MARKERS = (
    "roi",
    "return",
    "value",
    "save",
    "savings",
    "revenue",
    "payback",
    "realized",
    "results",
    "benefit",
)

CATEGORY_KEYWORDS = {
    ObjectionCategory.PRICE: ("cost", "price", "budget", "roi", "investment", "afford", "value", "pay"),
    ObjectionCategory.TIMING: ("time", "timeline", "quarter", "now", "implementation", "quickly", "weeks", "months"),
    ObjectionCategory.TRUST: ("proof", "guarantee", "reference", "customers", "track record", "case study", "trust", "reviews"),
    ObjectionCategory.AUTHORITY: ("decision", "team", "stakeholder", "leadership", "approve", "sign-off", "boss", "director"),
    ObjectionCategory.COMPETITION: ("competitor", "different", "switch", "unique", "compare", "advantage", "alternative"),
    ObjectionCategory.NEED: ("problem", "challenge", "pain", "need", "goal", "impact", "priority"),
}

# Fixed priority: (key, strength when present, improvement when absent)
HIGHLIGHT_RULES = (
    ("empathy", "Acknowledged the prospect's concern before responding", "Acknowledge the concern before answering it"),
    ("discovery_question", "Asked a discovery question to keep the prospect talking", "Ask a discovery question to understand the objection"),
    ("value_framing", "Framed the answer around value and ROI", "Tie your answer to concrete value or ROI"),
    ("proof", "Backed claims with evidence or specifics", "Back your claims with data, numbers, or a customer example"),
    ("category_focus", "Stayed focused on the objection that was raised", "Address the specific objection more directly"),
    ("substance", "Gave a complete, well-developed response", "Develop your response with more detail"),
    ("hedging", "Spoke without hedging or filler words", "Cut hedge and filler words to sound more confident"),
)

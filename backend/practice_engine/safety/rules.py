"""
Pattern tables and thresholds for content safety.
Changing these changes what gets blocked.
"""

import re

USER_INPUT_MAX_CHARS = 1500
MODEL_OUTPUT_MAX_CHARS = 1000

BLOCK_RISK_THRESHOLD = 0.8

HARMFUL_RISK = 0.7
PII_RISK = 0.7
INJECTION_RISK = 0.8
SUSPICIOUS_RISK = 0.3
LENGTH_RISK = 0.5
SELF_REFUSAL_DISCOUNT = 0.3

FILTERED_TOKEN = "[FILTERED]"

HARMFUL_PATTERNS = [
    re.compile(r"\b(porn|sex|nude|naked|xxx)\b", re.IGNORECASE),
    re.compile(r"\b(kill|murder|suicide|bomb|weapon|gun|knife|violence)\b", re.IGNORECASE),
    re.compile(r"\b(hate|racist|nazi|terrorist)\b", re.IGNORECASE),
]

PII_PATTERNS = [
    re.compile(r"\b\d{3}-\d{2}-\d{4}\b"),
    re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"),
    re.compile(r"\b\d{4}[\s-]?\d{4}[\s-]?\d{4}[\s-]?\d{4}\b"),
]

INJECTION_PATTERNS = [
    re.compile(r"ignore\s+(previous|all|above|system)\s+(instructions?|prompts?|rules?)", re.IGNORECASE),
    re.compile(r"forget\s+(everything|all|previous|system)", re.IGNORECASE),
    re.compile(r"new\s+(instructions?|prompts?|system\s+prompt|rules?)\b", re.IGNORECASE),
    re.compile(r"act\s+as\s+(?:a\s+)?(different|new|another)", re.IGNORECASE),
    re.compile(r"pretend\s+(?:to\s+be|you\s+are)", re.IGNORECASE),
    re.compile(r"roleplay\s+as", re.IGNORECASE),
    re.compile(r"simulate\s+(?:being|a)\b", re.IGNORECASE),
    re.compile(r"override\s+(system|safety|security)", re.IGNORECASE),
]

INJECTION_PHRASES = ["you are now", "your new role", "system:", "assistant:"]

SELF_REFUSAL_MARKERS = ["I cannot", "I'm not able to", "I am not able to"]

CAPS_RATIO_LIMIT = 0.5
CAPS_MIN_LENGTH = 20
SPECIAL_CHAR_RATIO_LIMIT = 0.3
REPEATED_CHAR_PATTERN = re.compile(r"(.)\1{10,}")
SPECIAL_CHAR_PATTERN = re.compile(r"[!@#$%^&*()_+\-=\[\]{};':\"\\|,.<>/?]")

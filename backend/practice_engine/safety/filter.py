from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum

from practice_engine.safety import rules

logger = logging.getLogger("practice_engine.safety")


class SafetyContext(str, Enum):
    USER_INPUT = "user_input"
    MODEL_OUTPUT = "model_output"


class SafetyLevel(str, Enum):
    SAFE = "safe"
    SUSPICIOUS = "suspicious"
    HARMFUL = "harmful"
    BLOCKED = "blocked"


@dataclass(frozen=True)
class SafetyVerdict:
    blocked: bool
    sanitized_text: str
    issues: list[str] = field(default_factory=list)
    level: SafetyLevel = SafetyLevel.SAFE
    risk: float = 0.0


def _collect(patterns, text: str) -> list[str]:
    found: list[str] = []
    for pattern in patterns:
        for match in pattern.finditer(text):
            token = match.group(0).lower()
            if token not in found:
                found.append(token)
    return found


def _suspicious_signals(text: str) -> list[str]:
    signals: list[str] = []
    length = max(len(text), 1)

    caps_ratio = len(re.findall(r"[A-Z]", text)) / length
    if caps_ratio > rules.CAPS_RATIO_LIMIT and len(text) > rules.CAPS_MIN_LENGTH:
        signals.append("excessive capitalization")

    if rules.REPEATED_CHAR_PATTERN.search(text):
        signals.append("repeated character spam")

    special_ratio = len(rules.SPECIAL_CHAR_PATTERN.findall(text)) / length
    if special_ratio > rules.SPECIAL_CHAR_RATIO_LIMIT:
        signals.append("excessive special characters")

    return signals


def _sanitize(text: str) -> str:
    sanitized = text
    for pattern in rules.HARMFUL_PATTERNS + rules.PII_PATTERNS + rules.INJECTION_PATTERNS:
        sanitized = pattern.sub(rules.FILTERED_TOKEN, sanitized)
    return re.sub(r"\s+", " ", sanitized).strip()


class ContentSafetyFilter:
    """
    Stateless text classifier. Never raises; anything that is not a
    non-empty string comes back blocked with ``invalid_input``.
    """

    def analyze(self, text, context: SafetyContext = SafetyContext.USER_INPUT) -> SafetyVerdict:
        try:
            return self._analyze(text, SafetyContext(context))
        except Exception as exc:
            logger.warning("safety analyze failed | err=%s", exc)
            return SafetyVerdict(
                blocked=True,
                sanitized_text="",
                issues=["invalid_input"],
                level=SafetyLevel.BLOCKED,
                risk=1.0,
            )

    def _analyze(self, text, context: SafetyContext) -> SafetyVerdict:
        if not isinstance(text, str) or not text.strip():
            return SafetyVerdict(
                blocked=True,
                sanitized_text="",
                issues=["invalid_input"],
                level=SafetyLevel.BLOCKED,
                risk=1.0,
            )

        issues: list[str] = []
        risk = 0.0
        level = SafetyLevel.SAFE
        hard_block = False

        max_chars = (
            rules.USER_INPUT_MAX_CHARS
            if context == SafetyContext.USER_INPUT
            else rules.MODEL_OUTPUT_MAX_CHARS
        )
        if len(text) > max_chars:
            issues.append("too_long")
            risk += rules.LENGTH_RISK
            level = SafetyLevel.BLOCKED
            hard_block = True

        harmful = _collect(rules.HARMFUL_PATTERNS, text)
        if harmful:
            issues.append("harmful_content")
            risk += rules.HARMFUL_RISK
            if level != SafetyLevel.BLOCKED:
                level = SafetyLevel.HARMFUL

        pii = _collect(rules.PII_PATTERNS, text)
        if pii:
            issues.append("personal_information")
            risk += rules.PII_RISK
            if level == SafetyLevel.SAFE:
                level = SafetyLevel.HARMFUL

        lowered = text.lower()
        injection = _collect(rules.INJECTION_PATTERNS, text)
        injection += [phrase for phrase in rules.INJECTION_PHRASES if phrase in lowered]
        if injection:
            issues.append("prompt_injection")
            risk += rules.INJECTION_RISK
            level = SafetyLevel.BLOCKED
            hard_block = True

        suspicious = _suspicious_signals(text)
        if suspicious:
            issues.append("suspicious_pattern")
            risk += rules.SUSPICIOUS_RISK
            if level == SafetyLevel.SAFE:
                level = SafetyLevel.SUSPICIOUS

        if context == SafetyContext.MODEL_OUTPUT and any(marker in text for marker in rules.SELF_REFUSAL_MARKERS):
            risk = max(0.0, risk - rules.SELF_REFUSAL_DISCOUNT)

        risk = min(risk, 1.0)
        blocked = hard_block or risk >= rules.BLOCK_RISK_THRESHOLD
        if blocked:
            level = SafetyLevel.BLOCKED
            logger.info("content blocked | context=%s issues=%s", context.value, issues)

        sanitized = _sanitize(text) if issues else re.sub(r"\s+", " ", text).strip()
        return SafetyVerdict(
            blocked=blocked,
            sanitized_text=sanitized,
            issues=issues,
            level=level,
            risk=round(risk, 2),
        )


_default_filter = ContentSafetyFilter()


def analyze(text, context: SafetyContext = SafetyContext.USER_INPUT) -> SafetyVerdict:
    return _default_filter.analyze(text, context)

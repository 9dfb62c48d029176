from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field

from practice_engine.models import Scenario
from practice_engine.scoring import rules

logger = logging.getLogger("practice_engine.scoring")

_TOKEN = re.compile(r"[a-z0-9']+")


@dataclass(frozen=True)
class ScoreCategories:
    clarity: int
    confidence: int
    handling: int
    vocabulary: int

    def to_dict(self) -> dict:
        return {
            "clarity": self.clarity,
            "confidence": self.confidence,
            "handling": self.handling,
            "vocabulary": self.vocabulary,
        }


@dataclass(frozen=True)
class ScoreResult:
    overall_score: int
    categories: ScoreCategories
    strengths: list[str] = field(default_factory=list)
    improvements: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "overall_score": self.overall_score,
            "categories": self.categories.to_dict(),
            "strengths": list(self.strengths),
            "improvements": list(self.improvements),
        }


def _clamp(value: int, low: int = rules.SCORE_MIN, high: int = rules.SCORE_MAX) -> int:
    return max(low, min(high, int(value)))


def _count(text: str, phrases) -> int:
    total = 0
    for phrase in phrases:
        if phrase[0].isalnum():
            total += len(re.findall(rf"(?<![a-z0-9']){re.escape(phrase)}(?![a-z0-9'])", text))
        else:
            total += text.count(phrase)
    return total


def extract_signals(transcript: str, scenario: Scenario) -> dict:
    """
    Lightweight, deterministic signals over the full transcript.
    """
    text = transcript.lower()
    word_count = len(text.split())
    tokens = _TOKEN.findall(text)
    unique_tokens = set(tokens)

    return {
        "word_count": word_count,
        "question_count": text.count("?"),
        "empathy_count": _count(text, rules.EMPATHY_PHRASES),
        "hedge_count": _count(text, rules.HEDGE_WORDS),
        "proof_count": _count(text, rules.PROOF_MARKERS) + len(re.findall(r"\d", text)),
        "value_count": _count(text, rules.VALUE_MARKERS),
        "category_hits": _count(text, rules.CATEGORY_KEYWORDS[scenario.objection_category]),
        "long_word_count": len([token for token in unique_tokens if len(token) >= rules.LONG_WORD_MIN_CHARS]),
        "diversity": (len(unique_tokens) / len(tokens)) if tokens else 0.0,
    }


class ScoringEngine:
    """
    Maps a transcript and its scenario to a ScoreResult.
    Pure: same input, same result. Never raises.
    """

    def score(self, transcript, scenario: Scenario) -> ScoreResult:
        text = transcript if isinstance(transcript, str) else ""
        signals = extract_signals(text.strip(), scenario)
        word_count = signals["word_count"]
        adjustment = rules.DIFFICULTY_ADJUSTMENT.get(scenario.difficulty, 0)

        clarity = _clamp(
            rules.CLARITY_BASE + math.floor(word_count / rules.CLARITY_WORDS_PER_POINT),
            low=rules.CLARITY_MIN,
        )

        if word_count == 0:
            confidence = handling = vocabulary = rules.SCORE_MIN
        else:
            confidence = _clamp(
                5
                + (1 if word_count >= rules.SUBSTANCE_MIN_WORDS else 0)
                + (1 if word_count >= rules.EXTENDED_MIN_WORDS else 0)
                + (1 if signals["hedge_count"] == 0 else -min(3, signals["hedge_count"]))
                + (1 if signals["proof_count"] else 0)
                + adjustment
            )
            handling = _clamp(
                3
                + (2 if signals["empathy_count"] else 0)
                + min(2, signals["question_count"])
                + (2 if signals["value_count"] else 0)
                + (1 if signals["proof_count"] else 0)
                + min(2, signals["category_hits"])
                + adjustment
            )
            vocabulary = _clamp(
                2
                + min(5, signals["long_word_count"] // 4)
                + min(2, signals["category_hits"])
                + (1 if signals["diversity"] >= rules.DIVERSITY_RATIO else 0)
            )

        overall = math.floor(
            clarity * rules.WEIGHT_CLARITY
            + confidence * rules.WEIGHT_CONFIDENCE
            + handling * rules.WEIGHT_HANDLING
            + vocabulary * rules.WEIGHT_VOCABULARY
        )

        strengths, improvements = self._highlights(signals)
        result = ScoreResult(
            overall_score=_clamp(overall, low=0),
            categories=ScoreCategories(
                clarity=clarity,
                confidence=confidence,
                handling=handling,
                vocabulary=vocabulary,
            ),
            strengths=strengths,
            improvements=improvements,
        )
        logger.info(
            "transcript scored | words=%s overall=%s category=%s",
            word_count,
            result.overall_score,
            scenario.objection_category.value,
        )
        return result

    @staticmethod
    def _highlights(signals: dict) -> tuple[list[str], list[str]]:
        word_count = signals["word_count"]
        present = {
            "empathy": signals["empathy_count"] > 0,
            "discovery_question": signals["question_count"] > 0,
            "value_framing": signals["value_count"] > 0,
            "proof": signals["proof_count"] > 0,
            "category_focus": signals["category_hits"] > 0,
            "substance": word_count >= rules.SUBSTANCE_MIN_WORDS,
            "hedging": word_count > 0 and signals["hedge_count"] == 0,
        }

        strengths: list[str] = []
        improvements: list[str] = []
        for key, strength, improvement in rules.HIGHLIGHT_RULES:
            if present[key]:
                strengths.append(strength)
            else:
                improvements.append(improvement)
        return strengths[: rules.MAX_HIGHLIGHTS], improvements[: rules.MAX_HIGHLIGHTS]


_default_engine = ScoringEngine()


def score(transcript, scenario: Scenario) -> ScoreResult:
    return _default_engine.score(transcript, scenario)

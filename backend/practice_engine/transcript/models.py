from dataclasses import dataclass, field
from enum import Enum
import time


class AggregatorStatus(str, Enum):
    EMPTY = "empty"
    ACCUMULATING = "accumulating"
    FINALIZED = "finalized"


@dataclass(frozen=True)
class TranscriptEvent:
    """
    One result from the transcription source.
    Interim events may be superseded; final events are committed.
    """
    text: str
    is_final: bool = False
    confidence: float | None = None
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class SessionTranscript:
    full_text: str = ""
    interim_text: str = ""
    running_confidence: float | None = None
    low_confidence: bool = False
    final_count: int = 0
    status: AggregatorStatus = AggregatorStatus.EMPTY

    def to_dict(self) -> dict:
        return {
            "full_text": self.full_text,
            "interim_text": self.interim_text,
            "running_confidence": self.running_confidence,
            "low_confidence": self.low_confidence,
            "final_count": self.final_count,
            "status": self.status.value,
        }

import logging
from threading import Lock

from .models import AggregatorStatus, SessionTranscript, TranscriptEvent
from . import rules

logger = logging.getLogger("practice_engine.transcript")


class TranscriptionAggregator:
    """
    Deterministic transcript state for ONE practice session.
    No AI.
    No reordering.
    Final events are the only thing that reaches full_text.
    """

    def __init__(self, low_confidence_threshold: float = rules.LOW_CONFIDENCE_MIN):
        self._lock = Lock()
        self.low_confidence_threshold = float(low_confidence_threshold)
        self._reset_locked()

    def _reset_locked(self):
        self._finals: list[str] = []
        self._confidences: list[float] = []
        self._interim_text = ""
        self._status = AggregatorStatus.EMPTY

    # -------------------------
    # INPUT API (FROM SOURCE)
    # -------------------------

    def push(self, event: TranscriptEvent) -> bool:
        """
        Apply one event synchronously. Returns False when the event was
        ignored (aggregator finalized, or empty final text).
        """
        with self._lock:
            if self._status == AggregatorStatus.FINALIZED:
                logger.info("event ignored | reason=finalized")
                return False

            text = str(event.text or "").strip()

            if not event.is_final:
                self._interim_text = text
                if self._status == AggregatorStatus.EMPTY and text:
                    self._status = AggregatorStatus.ACCUMULATING
                return True

            if not text:
                logger.info("event ignored | reason=empty_final")
                return False

            self._finals.append(text)
            self._confidences.append(self._normalize_confidence(event.confidence))
            self._interim_text = ""
            self._status = AggregatorStatus.ACCUMULATING
            return True

    @staticmethod
    def _normalize_confidence(value) -> float:
        if value is None:
            return rules.DEFAULT_FINAL_CONFIDENCE
        try:
            return max(0.0, min(1.0, float(value)))
        except (TypeError, ValueError):
            return rules.DEFAULT_FINAL_CONFIDENCE

    # -------------------------
    # LIFECYCLE
    # -------------------------

    def finalize(self) -> str:
        with self._lock:
            self._status = AggregatorStatus.FINALIZED
            self._interim_text = ""
            return " ".join(self._finals)

    def restart(self) -> None:
        with self._lock:
            self._reset_locked()
        logger.info("aggregator restarted")

    # -------------------------
    # READ API
    # -------------------------

    @property
    def status(self) -> AggregatorStatus:
        return self._status

    @property
    def full_text(self) -> str:
        with self._lock:
            return " ".join(self._finals)

    @property
    def interim_text(self) -> str:
        return self._interim_text

    @property
    def running_confidence(self) -> float | None:
        with self._lock:
            return self._running_confidence_locked()

    def _running_confidence_locked(self) -> float | None:
        if not self._confidences:
            return None
        return sum(self._confidences) / len(self._confidences)

    @property
    def low_confidence(self) -> bool:
        with self._lock:
            running = self._running_confidence_locked()
            return running is not None and running < self.low_confidence_threshold

    def snapshot(self) -> SessionTranscript:
        with self._lock:
            running = self._running_confidence_locked()
            return SessionTranscript(
                full_text=" ".join(self._finals),
                interim_text=self._interim_text,
                running_confidence=round(running, 4) if running is not None else None,
                low_confidence=running is not None and running < self.low_confidence_threshold,
                final_count=len(self._finals),
                status=self._status,
            )

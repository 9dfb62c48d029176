from practice_engine.transcript.aggregator import TranscriptionAggregator
from practice_engine.transcript.models import AggregatorStatus, SessionTranscript, TranscriptEvent
from practice_engine.transcript.source import QueueTranscriptionSource, TranscriptionSource

__all__ = [
    "AggregatorStatus",
    "QueueTranscriptionSource",
    "SessionTranscript",
    "TranscriptEvent",
    "TranscriptionAggregator",
    "TranscriptionSource",
]

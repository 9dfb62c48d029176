class PracticeEngineError(Exception):
    pass


class LedgerError(PracticeEngineError):
    """Remote entitlement ledger could not complete a call."""


class GenerationError(PracticeEngineError):
    """Remote generation failed or returned something unusable."""


class TranscriptionUnavailable(PracticeEngineError):
    """Transcription source could not start (permissions, device, backend)."""


class SessionStateError(PracticeEngineError):
    pass

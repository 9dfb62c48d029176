from practice_engine.generation.engine import ResponseGenerator
from practice_engine.generation.fallback import REPHRASE_MESSAGE, SAFETY_REFUSAL, classify_bucket, scenario_intro
from practice_engine.generation.remote import (
    GenerationReply,
    GenerationRequest,
    GenerationService,
    OpenAIGenerationService,
    build_generation_service,
)
from practice_engine.generation.steps import Attempt, AttemptOutcome, ChainResult, Fail, Skip, Success, run_chain

__all__ = [
    "Attempt",
    "AttemptOutcome",
    "ChainResult",
    "Fail",
    "GenerationReply",
    "GenerationRequest",
    "GenerationService",
    "OpenAIGenerationService",
    "REPHRASE_MESSAGE",
    "ResponseGenerator",
    "SAFETY_REFUSAL",
    "Skip",
    "Success",
    "build_generation_service",
    "classify_bucket",
    "run_chain",
    "scenario_intro",
]

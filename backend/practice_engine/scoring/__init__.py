from practice_engine.scoring.engine import ScoreCategories, ScoreResult, ScoringEngine, extract_signals, score

__all__ = ["ScoreCategories", "ScoreResult", "ScoringEngine", "extract_signals", "score"]

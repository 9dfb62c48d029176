import os
from pathlib import Path
from dotenv import load_dotenv

_BACKEND_ROOT = Path(__file__).resolve().parents[1]
_BACKEND_ENV_PATH = _BACKEND_ROOT / ".env"
load_dotenv(dotenv_path=_BACKEND_ENV_PATH, override=True)


def _env_flag(name: str, default: str = "false") -> bool:
    return str(os.getenv(name, default)).strip().lower() in {"1", "true", "yes", "on"}


OPENAI_API_KEY = str(os.getenv("OPENAI_API_KEY") or "").strip()
GENERATION_MODEL = str(os.getenv("GENERATION_MODEL") or "gpt-4o-mini").strip()
GENERATION_TIMEOUT_SEC = max(1.0, float(os.getenv("GENERATION_TIMEOUT_SEC", "8.0")))
GENERATION_MAX_TOKENS = max(32, int(os.getenv("GENERATION_MAX_TOKENS", "300")))
GENERATION_TEMPERATURE = float(os.getenv("GENERATION_TEMPERATURE", "0.8"))
HISTORY_WINDOW = max(1, int(os.getenv("HISTORY_WINDOW", "6")))

SESSION_DURATION_SEC = max(5.0, float(os.getenv("SESSION_DURATION_SEC", "60")))
LOW_CONFIDENCE_THRESHOLD = min(1.0, max(0.0, float(os.getenv("LOW_CONFIDENCE_THRESHOLD", "0.5"))))

SESSION_FEATURE_KEY = str(os.getenv("SESSION_FEATURE_KEY") or "objection_practice").strip()
SESSION_CREDIT_COST = max(1, int(os.getenv("SESSION_CREDIT_COST", "1")))
AUTO_GRANT_TRIAL = _env_flag("AUTO_GRANT_TRIAL", "true")

LEDGER_URL = str(os.getenv("LEDGER_URL") or os.getenv("SUPABASE_URL") or "").strip()
LEDGER_API_KEY = str(os.getenv("LEDGER_API_KEY") or os.getenv("SUPABASE_SERVICE_KEY") or "").strip()
LEDGER_TIMEOUT_SEC = max(1.0, float(os.getenv("LEDGER_TIMEOUT_SEC", "6.0")))

RATE_LIMIT_WINDOW_SEC = max(10, int(os.getenv("RATE_LIMIT_WINDOW_SEC", "60")))
RATE_LIMIT_MAX_REQUESTS = max(1, int(os.getenv("RATE_LIMIT_MAX_REQUESTS", "10")))

SESSION_CLEANUP_TTL_SEC = max(30.0, float(os.getenv("SESSION_CLEANUP_TTL_SEC", "900")))

import threading
import time
from typing import Any


_lock = threading.Lock()
_COUNTER_NAMES = (
    "sessions_started",
    "sessions_blocked",
    "sessions_completed",
    "session_timeouts",
    "generation_remote_success",
    "generation_remote_failed",
    "generation_fallback",
    "safety_blocked_input",
    "safety_blocked_output",
    "reservation_failed",
    "rate_limited",
)
_metrics: dict[str, float] = {name: 0.0 for name in _COUNTER_NAMES}
_metrics["generation_latency_total_ms"] = 0.0
_metrics["generation_latency_samples"] = 0.0


def increment_metric(name: str, amount: float = 1.0) -> None:
    key = str(name or "").strip()
    if not key:
        return
    with _lock:
        _metrics[key] = float(_metrics.get(key, 0.0)) + float(amount)


def observe_generation_latency_ms(value_ms: float) -> None:
    latency = max(0.0, float(value_ms or 0.0))
    with _lock:
        _metrics["generation_latency_total_ms"] = float(_metrics.get("generation_latency_total_ms", 0.0)) + latency
        _metrics["generation_latency_samples"] = float(_metrics.get("generation_latency_samples", 0.0)) + 1.0


def reset_metrics() -> None:
    with _lock:
        for key in list(_metrics.keys()):
            _metrics[key] = 0.0


def get_metrics_snapshot(extra: dict[str, Any] | None = None) -> dict[str, Any]:
    with _lock:
        data = dict(_metrics)

    latency_samples = max(1.0, float(data.get("generation_latency_samples") or 0.0))

    payload: dict[str, Any] = {"generated_at": time.time()}
    for name in _COUNTER_NAMES:
        payload[name] = int(data.get(name) or 0.0)
    payload["generation_latency_samples"] = int(data.get("generation_latency_samples") or 0.0)
    payload["avg_generation_latency_ms"] = round(
        float(data.get("generation_latency_total_ms") or 0.0) / latency_samples, 2
    )

    if extra:
        payload.update(extra)
    return payload

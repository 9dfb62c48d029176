from practice_engine.metrics import get_metrics_snapshot, increment_metric, observe_generation_latency_ms, reset_metrics


def test_counters_and_latency_average():
    increment_metric("sessions_started")
    increment_metric("sessions_started")
    increment_metric("   ")
    observe_generation_latency_ms(100)
    observe_generation_latency_ms(300)

    snapshot = get_metrics_snapshot(extra={"instance": "test"})

    assert snapshot["sessions_started"] == 2
    assert snapshot["generation_latency_samples"] == 2
    assert snapshot["avg_generation_latency_ms"] == 200.0
    assert snapshot["instance"] == "test"


def test_reset_zeroes_everything():
    increment_metric("rate_limited", 3)
    reset_metrics()

    snapshot = get_metrics_snapshot()
    assert snapshot["rate_limited"] == 0
    assert snapshot["avg_generation_latency_ms"] == 0.0

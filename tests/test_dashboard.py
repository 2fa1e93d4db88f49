import threading

from prometheus_client import REGISTRY

from trip_brain.brain_core.allocation import quick_allocate
from trip_brain.grafana import dashboard


def test_metrics_server_starts_once(monkeypatch):
    started = threading.Event()
    calls = []

    def fake_start(port):
        calls.append(port)
        started.set()

    monkeypatch.setattr(dashboard, "start_http_server", fake_start)
    monkeypatch.setattr(dashboard, "_METRICS_STARTED", False)
    dashboard.start_metrics_server(9123)
    dashboard.start_metrics_server(9123)
    assert started.wait(timeout=2)
    assert calls == [9123]


def test_allocation_runs_are_counted():
    before = REGISTRY.get_sample_value("trip_brain_allocations_total", {"status": "ok"}) or 0.0
    quick_allocate(["Kyoto", "Osaka"], 5)
    after = REGISTRY.get_sample_value("trip_brain_allocations_total", {"status": "ok"})
    assert after == before + 1

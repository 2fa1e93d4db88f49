# === Instrumentation for the trip brain engine ===
from prometheus_client import start_http_server, Counter, Gauge, Histogram
import threading

from trip_brain.tools.config import METRICS_PORT

SCORING_RUNS = Counter(
    "trip_brain_scoring_runs_total", "Activities scored by the combined scorer.", ["mode"]
)
RANKING_DURATION = Histogram(
    "trip_brain_ranking_duration_seconds", "Time spent ranking a batch of scored activities."
)
RECOMMENDATIONS_SERVED = Counter(
    "trip_brain_recommendations_total", "Recommendation lists returned to callers.", ["mode"]
)
ENRICHMENT_CACHE = Counter(
    "trip_brain_enrichment_cache_total", "Enrichment cache lookups.", ["result"]
)
TRIGGERS_FIRED = Counter(
    "trip_brain_triggers_fired_total", "Proactive messages emitted.", ["trigger"]
)
TRIGGERS_SUPPRESSED = Counter(
    "trip_brain_triggers_suppressed_total", "Trigger evaluations held back.", ["trigger", "reason"]
)
ALLOCATIONS = Counter(
    "trip_brain_allocations_total", "Trip-day allocation runs.", ["status"]
)
ACTIVE_SESSIONS = Gauge(
    "trip_brain_active_sessions", "Trip brain sessions alive in this process."
)

# Start /metrics HTTP server once
_METRICS_STARTED = False
_METRICS_LOCK = threading.Lock()


def start_metrics_server(port: int = METRICS_PORT):
    global _METRICS_STARTED
    with _METRICS_LOCK:
        if _METRICS_STARTED:
            return
        # Run start_http_server in a daemon thread so it doesn't block
        def _start():
            start_http_server(port)
        t = threading.Thread(target=_start, daemon=True)
        t.start()
        _METRICS_STARTED = True

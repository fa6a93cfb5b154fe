from prometheus_client import Counter, Histogram, REGISTRY, write_to_textfile
from contextlib import contextmanager
import time

TRANSFERS = Counter("drivehandoff_transfers_total", "Ownership transfers by outcome", ["status"])
STEP_LATENCY = Histogram("drivehandoff_step_latency_seconds", "Transfer step latency", ["step"])
API_REQUESTS = Counter("drivehandoff_api_requests_total", "Drive API requests", ["method", "status"])


@contextmanager
def time_step(step: str):
    t0 = time.time()
    try:
        yield
    finally:
        STEP_LATENCY.labels(step).observe(time.time() - t0)


def record_transfer_status(status: str) -> None:
    try:
        TRANSFERS.labels(status=status).inc()
    except Exception:
        # best-effort; never break a transfer because of metrics
        pass


def record_api_request(method: str, status: str) -> None:
    try:
        API_REQUESTS.labels(method=method, status=status).inc()
    except Exception:
        pass


def write_metrics(path: str) -> None:
    """Dump the default registry for the node_exporter textfile collector."""
    write_to_textfile(path, REGISTRY)

"""
Prometheus metrics.

Request hooks record per-endpoint counts and latency; the order splitting
workflow reports its outcomes through `basket_submissions_total` and
`orders_created_total`. `/metrics` is unauthenticated and must only be
reachable from the monitoring network.
"""
import os
import time
from flask import Blueprint, Response, request, g
from prometheus_client import Counter, Histogram, Gauge, generate_latest, CollectorRegistry, CONTENT_TYPE_LATEST
from prometheus_client import multiprocess, REGISTRY

metrics_bp = Blueprint('metrics', __name__)

# Gunicorn workers write to PROMETHEUS_MULTIPROC_DIR and are aggregated on scrape
if os.environ.get('PROMETHEUS_MULTIPROC_DIR'):
    scrape_registry = CollectorRegistry()
    multiprocess.MultiProcessCollector(scrape_registry)
    metric_registry = None
else:
    scrape_registry = REGISTRY
    metric_registry = REGISTRY

REQUEST_COUNT = Counter(
    'http_requests_total',
    'HTTP requests by endpoint and status',
    ['method', 'endpoint', 'http_status'],
    registry=metric_registry
)

REQUEST_LATENCY = Histogram(
    'http_request_duration_seconds',
    'HTTP request latency in seconds',
    ['method', 'endpoint'],
    registry=metric_registry,
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)
)

REQUESTS_IN_FLIGHT = Gauge(
    'http_requests_in_flight',
    'Requests currently being handled',
    registry=metric_registry
)

basket_submissions_total = Counter(
    'basket_submissions_total',
    'Basket submissions by outcome (success or error class)',
    ['outcome'],
    registry=metric_registry
)

orders_created_total = Counter(
    'orders_created_total',
    'Orders created from basket submissions',
    registry=metric_registry
)


def setup_metrics_instrumentation(app):
    """Register the request hooks. Called from the app factory."""

    @app.before_request
    def start_request_timer():
        g.request_started_at = time.perf_counter()
        REQUESTS_IN_FLIGHT.inc()

    @app.after_request
    def record_request(response):
        started = g.get('request_started_at')
        if started is not None:
            endpoint = request.endpoint or 'unknown'
            REQUEST_LATENCY.labels(request.method, endpoint).observe(time.perf_counter() - started)
            REQUEST_COUNT.labels(request.method, endpoint, response.status_code).inc()
        return response

    @app.teardown_request
    def finish_request(exception=None):
        # Runs even when the response could not be built
        if g.pop('request_started_at', None) is not None:
            REQUESTS_IN_FLIGHT.dec()


@metrics_bp.route('/metrics')
def metrics():
    """Prometheus text exposition."""
    return Response(generate_latest(scrape_registry), mimetype=CONTENT_TYPE_LATEST)

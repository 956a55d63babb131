"""
Prometheus metrics for the storefront API.

Request-level metrics are recorded by hooks installed with
setup_metrics_instrumentation(); checkout and order outcomes are recorded
explicitly by the cart and orders blueprints. /metrics is unauthenticated,
keep it off the public network.
"""
import os
import time

from flask import Blueprint, Response, g, request
from prometheus_client import (
    CONTENT_TYPE_LATEST, REGISTRY, CollectorRegistry, Counter, Gauge, Histogram,
    generate_latest, multiprocess
)

metrics_bp = Blueprint('metrics', __name__)

# Gunicorn workers share samples through PROMETHEUS_MULTIPROC_DIR
MULTIPROCESS_MODE = os.environ.get('PROMETHEUS_MULTIPROC_DIR') is not None

if MULTIPROCESS_MODE:
    registry = CollectorRegistry()
    multiprocess.MultiProcessCollector(registry)
    _register_in = None
else:
    registry = REGISTRY
    _register_in = REGISTRY

LATENCY_BUCKETS = (0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)

# Requests whose endpoint is not worth tracking
_UNTRACKED_ENDPOINTS = {'metrics.metrics', 'main.liveness'}

http_requests_total = Counter(
    'http_requests_total',
    'HTTP requests by method, endpoint and status',
    ['method', 'endpoint', 'http_status'],
    registry=_register_in
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request latency in seconds',
    ['method', 'endpoint'],
    registry=_register_in,
    buckets=LATENCY_BUCKETS
)

http_requests_in_flight = Gauge(
    'http_requests_in_flight',
    'HTTP requests currently being served',
    registry=_register_in
)

checkout_attempts_total = Counter(
    'checkout_attempts_total',
    'Checkout attempts by outcome (success or error kind)',
    ['outcome'],
    registry=_register_in
)

order_events_total = Counter(
    'order_events_total',
    'Order lifecycle events (created, cancelled, status_changed)',
    ['event'],
    registry=_register_in
)


def record_checkout(outcome):
    """Count one checkout attempt: 'success' or the failing error kind."""
    checkout_attempts_total.labels(outcome=outcome).inc()


def record_order_event(event):
    order_events_total.labels(event=event).inc()


def setup_metrics_instrumentation(app):
    """Install the request hooks feeding the HTTP metrics."""

    @app.before_request
    def start_request_timer():
        if request.endpoint in _UNTRACKED_ENDPOINTS:
            return
        g.request_started_at = time.perf_counter()
        http_requests_in_flight.inc()

    @app.after_request
    def observe_request(response):
        started = g.pop('request_started_at', None)
        if started is None:
            return response

        endpoint = request.endpoint or 'unmatched'
        http_request_duration_seconds.labels(
            method=request.method, endpoint=endpoint
        ).observe(time.perf_counter() - started)
        http_requests_total.labels(
            method=request.method, endpoint=endpoint, http_status=response.status_code
        ).inc()
        http_requests_in_flight.dec()
        return response


@metrics_bp.route('/metrics')
def metrics():
    return Response(generate_latest(registry), mimetype=CONTENT_TYPE_LATEST)

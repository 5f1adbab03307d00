"""
Prometheus metrics blueprint for observability.

Exposes /metrics with HTTP request metrics and sale engine counters
(sales committed, sales rejected by category, CNAM dossiers opened).
Restrict it to the monitoring network in production.
"""
from flask import Blueprint, Response, request, g
from prometheus_client import Counter, Histogram, Gauge, generate_latest, CollectorRegistry, CONTENT_TYPE_LATEST
from prometheus_client import multiprocess, REGISTRY
import time
import os

metrics_bp = Blueprint('metrics', __name__)

# Gunicorn workers share metrics through PROMETHEUS_MULTIPROC_DIR
MULTIPROCESS_MODE = os.environ.get('PROMETHEUS_MULTIPROC_DIR') is not None

if MULTIPROCESS_MODE:
    registry = CollectorRegistry()
    multiprocess.MultiProcessCollector(registry)
    _metric_registry = None
else:
    registry = REGISTRY
    _metric_registry = registry

# HTTP
http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'http_status'],
    registry=_metric_registry
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request latency in seconds',
    ['method', 'endpoint'],
    registry=_metric_registry,
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)
)

http_requests_in_flight = Gauge(
    'http_requests_in_flight',
    'Number of HTTP requests currently being processed',
    registry=_metric_registry
)

# Sale engine
sales_created_total = Counter(
    'sales_created_total',
    'Sales committed by the transaction engine',
    ['client_type', 'payment_status'],
    registry=_metric_registry
)

sales_failed_total = Counter(
    'sales_failed_total',
    'Sale submissions rejected or rolled back, by error category',
    ['category'],
    registry=_metric_registry
)

cnam_dossiers_created_total = Counter(
    'cnam_dossiers_created_total',
    'CNAM dossiers opened at sale time',
    ['bond_type'],
    registry=_metric_registry
)


def record_sale_created(sale):
    """Count a committed sale and the dossiers it opened."""
    payment_status = sale.payment.status.value if sale.payment else 'NONE'
    sales_created_total.labels(
        client_type=sale.client_type or 'UNKNOWN',
        payment_status=payment_status
    ).inc()
    for dossier in sale.dossiers:
        cnam_dossiers_created_total.labels(bond_type=dossier.bond_type.value).inc()


def record_sale_failed(category):
    sales_failed_total.labels(category=category).inc()


def setup_metrics_instrumentation(app):
    """
    Register before/after request hooks collecting HTTP metrics.

    Called from the app factory. Scrapes of /metrics itself are not counted.
    """

    @app.before_request
    def before_request_metrics():
        if request.endpoint == 'metrics.metrics':
            return
        g._metrics_start = time.perf_counter()
        http_requests_in_flight.inc()

    @app.after_request
    def after_request_metrics(response):
        start = g.pop('_metrics_start', None)
        if start is None:
            return response

        try:
            endpoint = request.endpoint or 'unknown'
            http_request_duration_seconds.labels(
                method=request.method, endpoint=endpoint
            ).observe(time.perf_counter() - start)
            http_requests_total.labels(
                method=request.method, endpoint=endpoint, http_status=response.status_code
            ).inc()
        except Exception as e:
            # Metrics must never break the response
            app.logger.warning(f"Failed to record metrics: {e}")
        finally:
            http_requests_in_flight.dec()

        return response


@metrics_bp.route('/metrics')
def metrics():
    """
    Prometheus metrics endpoint.

    SECURITY NOTE: not authenticated, restrict by network/firewall rules.
    """
    return Response(generate_latest(registry), mimetype=CONTENT_TYPE_LATEST)

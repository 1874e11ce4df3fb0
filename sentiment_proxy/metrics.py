# Prometheus metrics
from prometheus_client import Counter, Gauge, Histogram

REQUEST_COUNT = Counter(
    "sentiment_proxy_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)
REQUEST_DURATION = Histogram(
    "sentiment_proxy_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
)
ACTIVE_REQUESTS = Gauge(
    "sentiment_proxy_active_requests", "Number of active HTTP requests"
)
UPSTREAM_REQUEST_COUNT = Counter(
    "sentiment_proxy_upstream_requests_total",
    "Total requests to the language service",
    ["outcome"],
)
UPSTREAM_REQUEST_DURATION = Histogram(
    "sentiment_proxy_upstream_request_duration_seconds",
    "Language service request duration in seconds",
)

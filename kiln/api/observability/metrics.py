from __future__ import annotations

import re
from prometheus_client import Counter, Histogram


def normalize_path(path: str) -> str:
    """Reduce high-cardinality paths for metrics labels."""
    p = path or "/"

    # run ids: <recipe>-<timestamp>-<hex>
    p = re.sub(r"^(/api/v1/runs)/[^/]+$", r"\1/:run_id", p)
    # recipe names
    p = re.sub(r"^(/api/v1/recipes)/[^/]+(/run|/preflight)?$", r"\1/:name\2", p)

    return p


HTTP_REQUESTS_TOTAL = Counter(
    "kiln_http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "kiln_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)

from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total number of HTTP requests",
    ["method", "path", "status_code"],
)

EXTERNAL_API_COUNT = Counter(
    "storefront_requests_total",
    "Total number of storefront backend requests",
    ["endpoint", "status"],
)

EXTERNAL_API_DURATION = Histogram(
    "storefront_request_duration_seconds",
    "Duration of storefront backend requests in seconds",
    ["endpoint"],
)

CACHE_HITS = Counter("query_cache_hits_total", "Total number of query cache hits", ["endpoint"])
CACHE_MISSES = Counter(
    "query_cache_misses_total", "Total number of query cache misses", ["endpoint"]
)

CART_MUTATIONS = Counter(
    "cart_mutations_total",
    "Total number of optimistic cart mutations by outcome",
    ["kind", "outcome"],
)

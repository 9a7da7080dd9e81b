"""Prometheus metrics for the task store.

Cache effectiveness, filter latency, index size and remote sync health.
"""

from prometheus_client import Counter, Gauge, Histogram

# Result cache metrics
CACHE_HITS = Counter(
    "taskindex_cache_hits_total",
    "Total number of result cache hits",
)

CACHE_MISSES = Counter(
    "taskindex_cache_misses_total",
    "Total number of result cache misses",
)

CACHE_INVALIDATIONS = Counter(
    "taskindex_cache_invalidations_total",
    "Total number of result cache invalidations",
)

# Filter/search metrics
FILTER_LATENCY = Histogram(
    "taskindex_filter_latency_seconds",
    "Time to evaluate a filter spec and search query against the indexes",
    labelnames=["searched"],
    buckets=(0.0001, 0.0005, 0.001, 0.0025, 0.005, 0.01, 0.025, 0.05, 0.1),
)

FILTER_RESULT_SIZE = Histogram(
    "taskindex_filter_result_size",
    "Number of tasks returned per evaluation",
    buckets=(0, 1, 10, 50, 100, 500, 1000, 5000, 10000, 50000),
)

# Index metrics
INDEXED_TASKS = Gauge(
    "taskindex_indexed_tasks",
    "Number of tasks currently held by the index",
)

# Pagination metrics
PAGES_LOADED = Counter(
    "taskindex_pages_loaded_total",
    "Total number of pages fetched from the remote store",
    labelnames=["scope"],
)

DUPLICATES_SKIPPED = Counter(
    "taskindex_page_duplicates_skipped_total",
    "Records skipped because they were already indexed",
    labelnames=["scope"],
)

# Remote sync metrics
REMOTE_FAILURES = Counter(
    "taskindex_remote_failures_total",
    "Total number of failed remote calls",
    labelnames=["operation"],
)

MUTATION_ROLLBACKS = Counter(
    "taskindex_mutation_rollbacks_total",
    "Optimistic local mutations reverted after a remote failure",
    labelnames=["operation"],
)

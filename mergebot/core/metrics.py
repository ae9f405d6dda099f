"""Prometheus metrics for the fetch/merge pipeline.

Provides counters and histograms for tracking:
- Per-link fetch outcomes by retrieval strategy
- Fetch latency
- Merge outcomes
- Batch outcomes
"""

from prometheus_client import Counter, Histogram

pdf_fetch_total = Counter(
    "pdf_fetch_total",
    "Total PDF fetch attempts",
    ["strategy", "status"],  # direct/gdrive, success/failed
)

pdf_fetch_duration_seconds = Histogram(
    "pdf_fetch_duration_seconds",
    "PDF fetch duration in seconds",
    ["strategy"],
    buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0],
)

pdf_merge_total = Counter(
    "pdf_merge_total",
    "Total merge attempts",
    ["status"],
)

batches_total = Counter(
    "batches_total",
    "Total link batches processed",
    ["outcome"],  # delivered/all_failed/merge_failed/delivery_failed
)

from __future__ import annotations

from prometheus_client import Counter

DOCUMENT_UPLOADS_COUNTER = Counter(
    "docvault_uploads_total",
    "Document uploads by outcome",
    ["outcome"],
)

DOCUMENT_DELETES_COUNTER = Counter(
    "docvault_deletes_total",
    "Document deletions by outcome",
    ["outcome"],
)

ORPHANED_OBJECTS_COUNTER = Counter(
    "docvault_orphaned_objects_total",
    "Stored objects left behind after a failed cleanup",
    ["operation"],
)


def record_upload(outcome: str) -> None:
    DOCUMENT_UPLOADS_COUNTER.labels(outcome=outcome).inc()


def record_delete(outcome: str) -> None:
    DOCUMENT_DELETES_COUNTER.labels(outcome=outcome).inc()


def record_orphaned_object(operation: str) -> None:
    ORPHANED_OBJECTS_COUNTER.labels(operation=operation).inc()

"""Sequential, rate-limited batch runner for resume ingestion."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import StrEnum
from typing import Any, Callable, Iterable, Iterator, Sequence, TypeVar

import requests
from django.conf import settings

from src.candidates.errors import BatchTooLarge
from src.candidates.services.drive import DriveFile, download_drive_file
from src.candidates.services.ingestion import (
    IngestionMetadata,
    IngestionResult,
    ResumeIngestionService,
)
from src.candidates.services.ratelimit import RateLimiter
from src.candidates.services.spreadsheet import SpreadsheetRow, process_row

logger = logging.getLogger(__name__)

T = TypeVar("T")


class QueueItemStatus(StrEnum):
    PENDING = "pending"
    PROCESSING = "processing"
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class QueueItem:
    file_name: str
    status: QueueItemStatus = QueueItemStatus.PENDING
    message: str | None = None
    candidate_name: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (QueueItemStatus.SUCCESS, QueueItemStatus.ERROR)

    def as_dict(self) -> dict[str, Any]:
        return {
            "file_name": self.file_name,
            "status": self.status.value,
            "message": self.message,
            "candidate_name": self.candidate_name,
        }


@dataclass(frozen=True)
class BatchSummary:
    total: int
    succeeded: int
    failed: int
    pending: int
    aborted: bool = False

    @classmethod
    def from_queue(cls, queue: Sequence[QueueItem], *, aborted: bool = False) -> "BatchSummary":
        succeeded = sum(1 for item in queue if item.status == QueueItemStatus.SUCCESS)
        failed = sum(1 for item in queue if item.status == QueueItemStatus.ERROR)
        return cls(
            total=len(queue),
            succeeded=succeeded,
            failed=failed,
            pending=len(queue) - succeeded - failed,
            aborted=aborted,
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "pending": self.pending,
            "aborted": self.aborted,
        }


@dataclass(frozen=True)
class BatchProgress:
    """One progress event; ``queue`` is a snapshot, safe to keep after the run moves on."""

    queue: list[QueueItem]
    processed: int
    total: int
    current: str | None = None
    summary: BatchSummary | None = None

    @property
    def percent(self) -> int:
        return round(self.processed * 100 / self.total) if self.total else 100

    @property
    def done(self) -> bool:
        return self.summary is not None

    def as_dict(self) -> dict[str, Any]:
        payload = {
            "processed": self.processed,
            "total": self.total,
            "percent": self.percent,
            "current": self.current,
            "queue": [item.as_dict() for item in self.queue],
        }
        if self.summary is not None:
            payload["summary"] = self.summary.as_dict()
        return payload


def run_batch(
    items: Iterable[T],
    process: Callable[[T], IngestionResult],
    *,
    limiter: RateLimiter | None = None,
    should_abort: Callable[[], bool] | None = None,
    label: Callable[[T], str] = str,
    max_items: int | None = None,
) -> Iterator[BatchProgress]:
    """Process ``items`` one by one in input order and yield progress after every change.

    Oversized batches raise ``BatchTooLarge`` here, before anything runs. Exceptions
    from ``process`` mark only that item as failed. ``should_abort`` is checked
    between items; once it returns true the remaining items stay pending.
    """
    items = list(items)
    limit = max_items or settings.BATCH_MAX_ITEMS
    if len(items) > limit:
        raise BatchTooLarge(len(items), limit)
    limiter = limiter or RateLimiter(settings.INGESTION_DELAY_SECONDS)
    should_abort = should_abort or (lambda: False)
    return _drive(items, process, limiter, should_abort, label)


def _drive(items, process, limiter, should_abort, label) -> Iterator[BatchProgress]:
    queue = [QueueItem(file_name=label(item)) for item in items]
    total = len(queue)

    def snapshot(processed, current=None, summary=None) -> BatchProgress:
        return BatchProgress(
            queue=[replace(entry) for entry in queue],
            processed=processed,
            total=total,
            current=current,
            summary=summary,
        )

    processed = 0
    aborted = False
    for item, entry in zip(items, queue):
        if should_abort():
            aborted = True
            logger.info("Batch aborted after %s/%s items", processed, total)
            break

        entry.status = QueueItemStatus.PROCESSING
        yield snapshot(processed, current=entry.file_name)

        with limiter:
            try:
                result = process(item)
            except Exception as exc:  # noqa: BLE001
                logger.exception("Batch item %s failed", entry.file_name)
                result = IngestionResult(
                    success=False, message=str(exc), file_name=entry.file_name
                )

        entry.status = QueueItemStatus.SUCCESS if result.success else QueueItemStatus.ERROR
        entry.message = result.message
        entry.candidate_name = result.candidate_name
        processed += 1
        yield snapshot(processed, current=entry.file_name)

    summary = BatchSummary.from_queue(queue, aborted=aborted)
    logger.info(
        "Batch finished: %s succeeded, %s failed, %s pending",
        summary.succeeded,
        summary.failed,
        summary.pending,
    )
    yield snapshot(processed, summary=summary)


@dataclass(frozen=True)
class UploadedResume:
    name: str
    data: bytes
    content_type: str | None = None


def ingest_files(
    files: Sequence[UploadedResume],
    metadata: IngestionMetadata | None = None,
    *,
    service: ResumeIngestionService | None = None,
    limiter: RateLimiter | None = None,
    should_abort: Callable[[], bool] | None = None,
) -> Iterator[BatchProgress]:
    service = service or ResumeIngestionService()
    return run_batch(
        files,
        lambda file: service.ingest(file.data, file.name, file.content_type, metadata=metadata),
        limiter=limiter,
        should_abort=should_abort,
        label=lambda file: file.name,
    )


def ingest_spreadsheet_rows(
    rows: Sequence[SpreadsheetRow],
    metadata: IngestionMetadata | None = None,
    *,
    service: ResumeIngestionService | None = None,
    session: requests.Session | None = None,
    limiter: RateLimiter | None = None,
    should_abort: Callable[[], bool] | None = None,
) -> Iterator[BatchProgress]:
    metadata = metadata or IngestionMetadata()
    service = service or ResumeIngestionService()
    session = session or requests.Session()
    return run_batch(
        rows,
        lambda row: process_row(row, metadata, service=service, session=session),
        limiter=limiter,
        should_abort=should_abort,
        label=lambda row: row.display_name,
    )


def ingest_drive_files(
    files: Sequence[DriveFile],
    access_token: str,
    metadata: IngestionMetadata | None = None,
    *,
    service: ResumeIngestionService | None = None,
    session: requests.Session | None = None,
    limiter: RateLimiter | None = None,
    should_abort: Callable[[], bool] | None = None,
) -> Iterator[BatchProgress]:
    metadata = metadata or IngestionMetadata()
    service = service or ResumeIngestionService()
    session = session or requests.Session()

    def process(file: DriveFile) -> IngestionResult:
        downloaded = download_drive_file(file, access_token, session=session)
        return service.ingest(
            downloaded.data,
            downloaded.name,
            downloaded.content_type,
            metadata=replace(metadata, source="Google Drive", source_url=file.url),
        )

    return run_batch(
        files,
        process,
        limiter=limiter,
        should_abort=should_abort,
        label=lambda file: file.name,
    )

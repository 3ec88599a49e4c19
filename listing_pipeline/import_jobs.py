"""
Long-running CSV imports tracked as jobs in an injected JobStore.

A job processes its rows in fixed-size batches, publishes progress after
each batch and stops early when someone cancels it.
"""
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from loguru import logger

from listing_pipeline.audit import AuditSink
from listing_pipeline.config import BATCH_SIZE, DETAIL_LIST_CAP
from listing_pipeline.csv_operations import FIRST_DATA_ROW, audit_import_run, import_businesses
from listing_pipeline.exceptions import ListingPipelineError
from listing_pipeline.job_store import JobStore
from listing_pipeline.models import BusinessRecord, ImportJob, ImportOptions, ImportRunSummary
from listing_pipeline.storage import BusinessRepository

FINISHED_STATUSES = ("completed", "failed", "cancelled")


def batch_iter(rows: Sequence[Dict[str, Any]], batch_size: int) -> Iterator[Tuple[int, Sequence[Dict[str, Any]]]]:
    """
    Yield index and row slices of size `batch_size` for batched processing.
    """
    n = len(rows)
    for i in range(0, n, batch_size):
        yield i, rows[i:i + batch_size]


def create_import_job(store: JobStore, filename: str, total_rows: int) -> ImportJob:
    job = ImportJob(
        job_id=str(uuid.uuid4()),
        filename=filename,
        total_rows=total_rows,
        started_at=datetime.now(timezone.utc),
    )
    store.set(job.job_id, job)
    return job


def get_import_job(store: JobStore, job_id: str) -> Optional[ImportJob]:
    return store.get(job_id)


def cancel_import_job(store: JobStore, job_id: str) -> bool:
    """Request cancellation. Returns False when the job is unknown or already finished."""
    job = store.get(job_id)
    if job is None or job.status in FINISHED_STATUSES:
        return False
    store.set(job_id, replace(job, status="cancelled", ended_at=datetime.now(timezone.utc)))
    return True


def _merge(total: ImportRunSummary, part: ImportRunSummary, cap: int) -> None:
    total.successful += part.successful
    total.duplicates += part.duplicates
    total.errors += part.errors
    total.warnings += part.warnings
    for name in ("imported", "duplicates", "errors", "warnings"):
        merged: List[Dict[str, Any]] = getattr(total.details, name)
        merged.extend(getattr(part.details, name)[: max(cap - len(merged), 0)])


def run_import_job(
    store: JobStore,
    job_id: str,
    rows: Sequence[Dict[str, Any]],
    repository: BusinessRepository,
    options: Optional[ImportOptions] = None,
    audit: Optional[AuditSink] = None,
    batch_size: int = BATCH_SIZE,
) -> ImportJob:
    """
    Run an import job to completion, cancellation or failure.

    Args:
        store (JobStore): Where job state lives.
        job_id (str): Job created by create_import_job.
        rows (Sequence[Dict[str, Any]]): Parsed CSV rows.
        repository (BusinessRepository): Target of the import.
        options (Optional[ImportOptions]): Import options shared by every batch.
        audit (Optional[AuditSink]): Receives one summary event for the job.
        batch_size (int): Rows per batch.

    Returns:
        ImportJob: Final job state, also stored under job_id.
    """
    job = store.get(job_id)
    if job is None:
        raise ListingPipelineError(f"Import job not found: {job_id}")
    if job.status in FINISHED_STATUSES:
        return job

    options = options or ImportOptions()
    total = ImportRunSummary(total_rows=len(rows), dry_run=options.dry_run)
    accepted: List[BusinessRecord] = []
    job = replace(job, status="processing", total_rows=len(rows), summary=total)
    store.set(job_id, job)

    try:
        for start, batch in batch_iter(rows, batch_size):
            current = store.get(job_id)
            if current is not None and current.status == "cancelled":
                job = current
                break

            part = import_businesses(
                batch,
                repository,
                options,
                audit=audit,
                first_row_number=FIRST_DATA_ROW + start,
                emit_audit=False,
                accepted=accepted,
            )
            _merge(total, part, DETAIL_LIST_CAP)

            # a cancel request may have landed while the batch ran
            processed = start + len(batch)
            job = replace(
                store.get(job_id) or job,
                processed_rows=processed,
                progress=round(processed * 100 / len(rows)) if rows else 100,
                success_count=total.successful,
                duplicate_count=total.duplicates,
                error_count=total.errors,
                summary=total,
            )
            store.set(job_id, job)
            logger.debug(f"Import job {job_id}: {processed}/{len(rows)} rows")

        # a cancel that arrives during the final batch is too late to stop anything
        if job.status == "cancelled" and job.processed_rows < len(rows):
            job = replace(job, summary=total)
            logger.info(f"Import job {job_id} cancelled after {job.processed_rows}/{len(rows)} rows")
        else:
            job = replace(job, status="completed", progress=100, ended_at=datetime.now(timezone.utc))
    except Exception as e:
        logger.exception(f"Import job {job_id} failed")
        job = replace(job, status="failed", error=str(e), ended_at=datetime.now(timezone.utc))

    store.set(job_id, job)
    audit_import_run(audit, total, options)
    return job

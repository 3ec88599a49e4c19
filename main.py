import asyncio
import math
import sys
from typing import Any, Dict, List

import pandas as pd
from loguru import logger

from listing_pipeline.approval import process_business_approval
from listing_pipeline.audit import InMemoryAuditSink, LoggingAuditSink
from listing_pipeline.clients import AbrClient
from listing_pipeline.config import BATCH_SIZE, DEDUPE_MODE, DRY_RUN, INPUT_CSV, LOG_LEVEL, OUTPUT_CSV
from listing_pipeline.csv_operations import export_businesses_to_csv, validate_csv_structure
from listing_pipeline.field_mapping import map_headers
from listing_pipeline.import_jobs import create_import_job, run_import_job
from listing_pipeline.job_store import InMemoryJobStore
from listing_pipeline.matchers import process_duplicates
from listing_pipeline.models import DedupeMode, ImportOptions
from listing_pipeline.quality_scorer import calculate_quality_score
from listing_pipeline.storage import InMemoryBusinessRepository


def load_business_rows_from_csv(file_path: str, nrows: int = None) -> List[Dict[str, Any]]:
    """Load a CSV as one dict per data row, converting NaN to None."""
    df = pd.read_csv(file_path, nrows=nrows, dtype=str)
    rows = []
    for record in df.to_dict(orient="records"):
        rows.append({
            key: None if isinstance(value, float) and math.isnan(value) else value
            for key, value in record.items()
        })
    return rows


async def main():
    """
    Run the directory ingestion pipeline over INPUT_CSV.

    - Maps headers, validates the file and imports rows in batches with duplicate detection.
    - Evaluates every imported business for approval.
    - Sweeps the directory for duplicates and exports the result to OUTPUT_CSV.
    """
    # Initialize logs
    logger.remove()  # Remove default handler
    logger.add(sys.stderr, level=LOG_LEVEL, format="<green>{time:HH:mm:ss}</green> | <level>{message}</level>")

    rows = load_business_rows_from_csv(INPUT_CSV)
    headers = list(rows[0].keys()) if rows else []
    mapping = map_headers(headers)
    for header, field in mapping.detected.items():
        logger.debug(f"🧭 {header!r} -> {field} ({mapping.confidence[header]}%)")
    if mapping.missing:
        logger.warning(f"No column found for: {', '.join(mapping.missing)}")

    mapped_preview = [{mapping.detected.get(k, k): v for k, v in row.items()} for row in rows]
    validation = validate_csv_structure(mapped_preview)
    for error in validation.errors:
        logger.warning(error)

    repository = InMemoryBusinessRepository()
    audit = InMemoryAuditSink() if DRY_RUN else LoggingAuditSink()
    store = InMemoryJobStore()
    options = ImportOptions(
        dry_run=DRY_RUN,
        dedupe_mode=DedupeMode(DEDUPE_MODE),
        field_mapping=mapping.detected,
    )

    try:
        job = create_import_job(store, INPUT_CSV, len(rows))
        job = run_import_job(store, job.job_id, rows, repository, options, audit=audit, batch_size=BATCH_SIZE)
        print(
            f"Import {job.status}: {job.success_count} imported, {job.duplicate_count} duplicates, "
            f"{job.error_count} errors of {job.total_rows} rows"
        )
        if DRY_RUN:
            return

        # Approval runs one business at a time to stay within the ABR rate limit
        for business in repository.find_many():
            result = await process_business_approval(business, audit=audit)
            updated = repository.update(
                business.id,
                approval_status=result.approval_status,
                abn_status=result.abn_status,
            )
            repository.update(
                business.id,
                quality_score=calculate_quality_score(updated),
                updated_at=updated.updated_at,
            )

        sweep = process_duplicates(repository, DedupeMode(DEDUPE_MODE), auto_mark=True, audit=audit)
        print(f"Duplicate sweep: {len(sweep.duplicate_groups)} group(s), {sweep.processed_count} duplicate(s)")

        exported = export_businesses_to_csv(repository, OUTPUT_CSV, audit=audit)
        print(f"Exported {exported} businesses to {OUTPUT_CSV}")
    finally:
        # Cleanup: close AbrClient session to prevent unclosed connector warnings
        abr_client = AbrClient()
        await abr_client.close()


if __name__ == "__main__":
    asyncio.run(main())

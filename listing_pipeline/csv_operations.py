"""
Batch import, export and structure validation for business CSV data.

Rows arrive already parsed (one dict per data row). Each row is handled on
its own: a bad row is recorded and the run carries on, so
successful + duplicates + errors always equals the number of rows.
"""
import math
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd
from loguru import logger

from listing_pipeline.approval.abn import validate_abn_format
from listing_pipeline.audit import AuditSink, EXPORT_CSV, IMPORT_CSV, IMPORT_CSV_DRY_RUN, log_audit_event
from listing_pipeline.config import DETAIL_LIST_CAP
from listing_pipeline.field_mapping import REQUIRED_FIELDS, apply_field_mapping, missing_required_fields
from listing_pipeline.matchers.duplicate_matcher import find_duplicate_verdicts
from listing_pipeline.models import (
    AbnStatus,
    ApprovalStatus,
    BusinessRecord,
    CsvValidationResult,
    DedupeMode,
    ExportFilters,
    ImportOptions,
    ImportRunSummary,
)
from listing_pipeline.normalizer import normalize_phone
from listing_pipeline.quality_scorer import calculate_quality_score
from listing_pipeline.storage import BusinessRepository

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
FIRST_DATA_ROW = 2  # line 1 of the file is the header
PREVIEW_ROWS = 5

EXPORT_COLUMNS = {
    "id": "ID",
    "name": "Name",
    "phone": "Phone",
    "email": "Email",
    "website": "Website",
    "address": "Address",
    "suburb": "Suburb",
    "category": "Category",
    "description": "Description",
    "abn": "ABN",
    "abn_status": "ABN Status",
    "approval_status": "Approval Status",
    "source": "Source",
    "quality_score": "Quality Score",
    "latitude": "Latitude",
    "longitude": "Longitude",
    "created_at": "Created At",
    "updated_at": "Updated At",
}


def _clean(value: Any) -> Optional[str]:
    """Strip a cell; blank cells and NaN become None."""
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    text = str(value).strip()
    return text or None


def _row_data(raw_row: Any) -> Dict[str, Any]:
    return dict(raw_row) if isinstance(raw_row, dict) else {"raw": repr(raw_row)}


def _append_capped(items: List[Dict[str, Any]], item: Dict[str, Any]) -> None:
    if len(items) < DETAIL_LIST_CAP:
        items.append(item)


def _parse_coordinate(value: Optional[str], lower: float, upper: float) -> float:
    number = float(value)
    if math.isnan(number) or not lower <= number <= upper:
        raise ValueError(f"{value!r} is out of range")
    return number


def build_record_from_row(row: Dict[str, Any], options: ImportOptions, warnings: List[str]) -> BusinessRecord:
    """
    Construct a PENDING business from a cleaned CSV row.

    Malformed optional values are dropped or kept as entered and described in `warnings`.
    """
    email = row.get("email")
    if email and not EMAIL_PATTERN.match(email):
        warnings.append(f"Invalid email format: {email}")

    phone = row.get("phone")
    if phone and normalize_phone(phone) is None:
        warnings.append(f"Unrecognised Australian phone number: {phone}")

    abn = row.get("abn")
    if abn and not validate_abn_format(abn):
        warnings.append(f"Invalid ABN format or checksum: {abn}")

    coordinates = {}
    for field, (lower, upper) in (("latitude", (-90.0, 90.0)), ("longitude", (-180.0, 180.0))):
        raw = row.get(field)
        if raw is None:
            coordinates[field] = None
            continue
        try:
            coordinates[field] = _parse_coordinate(raw, lower, upper)
        except ValueError:
            warnings.append(f"Invalid {field}: {raw}")
            coordinates[field] = None

    now = datetime.now(timezone.utc)
    record = BusinessRecord(
        name=row["name"],
        suburb=row["suburb"],
        category=row["category"],
        phone=phone,
        email=email,
        website=row.get("website"),
        address=row.get("address"),
        bio=row.get("description") or row.get("bio"),
        abn=abn,
        abn_status=AbnStatus.PENDING if abn else AbnStatus.NOT_PROVIDED,
        approval_status=ApprovalStatus.PENDING,
        source=options.source,
        latitude=coordinates["latitude"],
        longitude=coordinates["longitude"],
        created_at=now,
        updated_at=now,
    )
    record.quality_score = calculate_quality_score(record, now=now)
    return record


def import_businesses(
    rows: Sequence[Dict[str, Any]],
    repository: BusinessRepository,
    options: Optional[ImportOptions] = None,
    audit: Optional[AuditSink] = None,
    first_row_number: int = FIRST_DATA_ROW,
    emit_audit: bool = True,
    accepted: Optional[List[BusinessRecord]] = None,
) -> ImportRunSummary:
    """
    Import parsed CSV rows with validation and duplicate detection.

    Args:
        rows (Sequence[Dict[str, Any]]): One dict per data row, keyed by header.
        repository (BusinessRepository): Pool to dedupe against and, unless dry-run, to persist into.
        options (Optional[ImportOptions]): Dry-run, dedupe mode, source, field mapping.
        audit (Optional[AuditSink]): Receives one summary event for the run.
        first_row_number (int): File line number of rows[0].
        emit_audit (bool): Record the run summary; callers aggregating several runs record their own.
        accepted (Optional[List[BusinessRecord]]): Rows accepted so far in this run. Callers that
            split one run into several calls pass the same list to each, so dry-run
            deduplication spans the whole run.

    Returns:
        ImportRunSummary: Counters for every row plus capped per-row details.
    """
    options = options or ImportOptions()
    dedupe_mode = DedupeMode(options.dedupe_mode)
    summary = ImportRunSummary(total_rows=len(rows), dry_run=options.dry_run)
    details = summary.details
    if accepted is None:
        accepted = []

    logger.info(f"📊 Processing {len(rows)} businesses from CSV (dedupe={dedupe_mode.value}, dry_run={options.dry_run})")

    for index, raw_row in enumerate(rows):
        row_number = first_row_number + index
        try:
            mapped = apply_field_mapping(raw_row, options.field_mapping) if options.field_mapping else dict(raw_row)
            row = {key: _clean(value) for key, value in mapped.items()}

            missing = missing_required_fields(row)
            if missing:
                summary.errors += 1
                _append_capped(details.errors, {
                    "row": row_number,
                    "data": dict(raw_row),
                    "error": f"Missing required fields: {', '.join(missing)}",
                })
                continue

            row_warnings: List[str] = []
            record = build_record_from_row(row, options, row_warnings)

            if dedupe_mode is not DedupeMode.NONE:
                pool = repository.find_many()
                if options.dedupe_within_batch and options.dry_run:
                    pool = pool + accepted
                verdicts = find_duplicate_verdicts(record, pool, dedupe_mode)
                if verdicts:
                    summary.duplicates += 1
                    _append_capped(details.duplicates, {
                        "row": row_number,
                        "data": dict(raw_row),
                        "existing_business_id": verdicts[0].matched_record_id,
                        "reason": verdicts[0].reason.value,
                        "confidence": "high" if dedupe_mode is DedupeMode.STRICT else "medium",
                    })
                    continue

            for message in row_warnings:
                summary.warnings += 1
                _append_capped(details.warnings, {"row": row_number, "warning": message})

            if options.dry_run:
                accepted.append(record)
                _append_capped(details.imported, {
                    "row": row_number,
                    "data": dict(raw_row),
                    "action": "WOULD_IMPORT",
                    "quality_score": record.quality_score,
                })
            else:
                created = repository.create(record)
                accepted.append(created)
                _append_capped(details.imported, {
                    "row": row_number,
                    "business_id": created.id,
                    "data": dict(raw_row),
                    "quality_score": created.quality_score,
                })

            summary.successful += 1

        except Exception as e:
            summary.errors += 1
            _append_capped(details.errors, {"row": row_number, "data": _row_data(raw_row), "error": str(e)})
            logger.opt(exception=e).warning(f"Error processing row {row_number}: {e}")

    logger.info(
        f"CSV import finished: {summary.successful} imported, {summary.duplicates} duplicates, "
        f"{summary.errors} errors of {summary.total_rows} rows"
    )

    if emit_audit:
        audit_import_run(audit, summary, options)
    return summary


def audit_import_run(audit: Optional[AuditSink], summary: ImportRunSummary, options: ImportOptions) -> None:
    log_audit_event(
        audit,
        IMPORT_CSV_DRY_RUN if options.dry_run else IMPORT_CSV,
        target=options.target,
        meta={
            "records_processed": summary.total_rows,
            "successful": summary.successful,
            "duplicates": summary.duplicates,
            "errors": summary.errors,
            "dedupe_mode": DedupeMode(options.dedupe_mode).value,
            "source": options.source.value,
        },
        actor_id=options.actor_id,
    )


def _contains(value: Optional[str], needle: str) -> bool:
    return bool(value) and needle.lower() in value.lower()


def select_businesses_for_export(repository: BusinessRepository, filters: ExportFilters) -> List[BusinessRecord]:
    businesses = repository.find_many()
    if filters.approval_status is not None:
        businesses = [b for b in businesses if b.approval_status == filters.approval_status]
    if filters.abn_status is not None:
        businesses = [b for b in businesses if b.abn_status == filters.abn_status]
    if filters.suburb:
        businesses = [b for b in businesses if _contains(b.suburb, filters.suburb)]
    if filters.category:
        businesses = [b for b in businesses if _contains(b.category, filters.category)]

    epoch = datetime.min.replace(tzinfo=timezone.utc)
    businesses.sort(
        key=lambda b: (b.quality_score, b.created_at or epoch),
        reverse=True,
    )
    if filters.limit is not None:
        businesses = businesses[: filters.limit]
    return businesses


def export_businesses_to_csv(
    repository: BusinessRepository,
    output_path: str,
    filters: Optional[ExportFilters] = None,
    audit: Optional[AuditSink] = None,
) -> int:
    """
    Write filtered businesses to a CSV file, best quality first.

    Returns:
        int: Number of businesses written.
    """
    filters = filters or ExportFilters()
    businesses = select_businesses_for_export(repository, filters)

    rows = [
        {
            "id": b.id,
            "name": b.name,
            "phone": b.phone or "",
            "email": b.email or "",
            "website": b.website or "",
            "address": b.address or "",
            "suburb": b.suburb or "",
            "category": b.category or "",
            "description": b.bio or "",
            "abn": b.abn or "",
            "abn_status": b.abn_status.value,
            "approval_status": b.approval_status.value,
            "source": b.source.value,
            "quality_score": b.quality_score,
            "latitude": b.latitude if b.latitude is not None else "",
            "longitude": b.longitude if b.longitude is not None else "",
            "created_at": b.created_at.isoformat() if b.created_at else "",
            "updated_at": b.updated_at.isoformat() if b.updated_at else "",
        }
        for b in businesses
    ]
    df = pd.DataFrame(rows, columns=list(EXPORT_COLUMNS))
    df.rename(columns=EXPORT_COLUMNS).to_csv(output_path, index=False)

    logger.info(f"Exported {len(businesses)} businesses to {output_path}")
    log_audit_event(
        audit,
        EXPORT_CSV,
        target=output_path,
        meta={
            "record_count": len(businesses),
            "filters": {
                "approval_status": filters.approval_status.value if filters.approval_status else None,
                "abn_status": filters.abn_status.value if filters.abn_status else None,
                "suburb": filters.suburb,
                "category": filters.category,
                "limit": filters.limit,
            },
        },
        actor_id=filters.actor_id,
    )
    return len(businesses)


def validate_csv_structure(rows: Sequence[Dict[str, Any]]) -> CsvValidationResult:
    """
    Check parsed rows before an import: required columns exist and the first
    few rows have values for them.
    """
    if not rows:
        return CsvValidationResult(
            is_valid=False,
            errors=["CSV file is empty or has no data rows"],
            preview=[],
            total_rows=0,
        )

    errors = []
    columns = set(rows[0].keys())
    for field in REQUIRED_FIELDS:
        if field not in columns:
            errors.append(f"Missing required column: {field}")

    for index, row in enumerate(rows[:PREVIEW_ROWS]):
        cleaned = {key: _clean(value) for key, value in row.items()}
        for field in missing_required_fields(cleaned):
            if field in columns:
                errors.append(f"Row {index + FIRST_DATA_ROW}: Missing value for required field '{field}'")

    return CsvValidationResult(
        is_valid=not errors,
        errors=errors,
        preview=[dict(r) for r in rows[:PREVIEW_ROWS]],
        total_rows=len(rows),
    )

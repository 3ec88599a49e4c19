# listing_pipeline/matchers/duplicate_sweep.py

from typing import Iterator, List, Optional, Sequence, Set
from loguru import logger
from listing_pipeline.audit import AuditSink, DUPLICATE_SWEEP, log_audit_event
from listing_pipeline.models import (
    ApprovalStatus,
    BusinessRecord,
    DedupeMode,
    DuplicateGroup,
    DuplicateSweepResult,
    SweepProgress,
)
from listing_pipeline.matchers.duplicate_matcher import find_duplicates
from listing_pipeline.storage import BusinessRepository


class DuplicateSweep:
    """
    Pairwise duplicate sweep over every business that is not already a duplicate.

    Iterating yields one SweepProgress per business examined; a progress item
    carries a DuplicateGroup when that business turned out to have duplicates.
    Call cancel() to stop the sweep before the next business is examined.
    """

    def __init__(self, records: Sequence[BusinessRecord], mode: DedupeMode = DedupeMode.STRICT):
        self.mode = DedupeMode(mode)
        self.records = [r for r in records if r.duplicate_of_id is None]
        self.processed_ids: Set[str] = set()
        self.groups: List[DuplicateGroup] = []
        self.cancelled = False

    @property
    def total(self) -> int:
        return len(self.records)

    def cancel(self) -> None:
        self.cancelled = True

    def __iter__(self) -> Iterator[SweepProgress]:
        confidence = "high" if self.mode is DedupeMode.STRICT else "medium"
        for index, business in enumerate(self.records):
            if self.cancelled:
                logger.info(f"Duplicate sweep cancelled after {index}/{self.total} businesses")
                return

            group = None
            if business.id not in self.processed_ids:
                pool = [r for r in self.records if r.id not in self.processed_ids]
                duplicates = find_duplicates(business, pool, self.mode, exclude_id=business.id)
                if duplicates:
                    group = DuplicateGroup(canonical=business, duplicates=duplicates, confidence=confidence)
                    self.groups.append(group)
                    self.processed_ids.add(business.id)
                    self.processed_ids.update(d.id for d in duplicates)

            yield SweepProgress(processed=index + 1, total=self.total, group=group)


def mark_as_duplicate(
    repository: BusinessRepository,
    duplicate_id: str,
    canonical_id: str,
) -> BusinessRecord:
    """
    Point a business at its canonical record and hide it from public view.
    """
    if duplicate_id == canonical_id:
        raise ValueError("A business cannot be marked as a duplicate of itself")
    return repository.update(
        duplicate_id,
        duplicate_of_id=canonical_id,
        approval_status=ApprovalStatus.REJECTED,
    )


def unmark_duplicate(repository: BusinessRepository, business_id: str) -> BusinessRecord:
    """Clear a duplicate back-reference and send the business back for review."""
    return repository.update(
        business_id,
        duplicate_of_id=None,
        approval_status=ApprovalStatus.PENDING,
    )


def process_duplicates(
    repository: BusinessRepository,
    mode: DedupeMode = DedupeMode.STRICT,
    auto_mark: bool = False,
    sweep: Optional[DuplicateSweep] = None,
    audit: Optional[AuditSink] = None,
    actor_id: Optional[str] = None,
) -> DuplicateSweepResult:
    """
    Run a full duplicate sweep over the repository.

    Args:
        repository (BusinessRepository): Source of businesses and target of marks.
        mode (DedupeMode): strict or loose matching.
        auto_mark (bool): Mark every duplicate found against its group's canonical record.
        sweep (Optional[DuplicateSweep]): A prepared sweep, so the caller can cancel it.
        audit (Optional[AuditSink]): Receives one event for an auto_mark sweep.
        actor_id (Optional[str]): User who requested the sweep.

    Returns:
        DuplicateSweepResult: Groups found, number of duplicates, and whether the sweep was cancelled.
    """
    if sweep is None:
        sweep = DuplicateSweep(repository.find_many(duplicate_of_id=None), mode)

    processed_count = 0
    for progress in sweep:
        if progress.group is None:
            continue
        processed_count += len(progress.group.duplicates)
        logger.debug(
            f"🔁 {progress.group.canonical.name!r} has {len(progress.group.duplicates)} duplicate(s) "
            f"[{progress.processed}/{progress.total}]"
        )
        if auto_mark:
            for duplicate in progress.group.duplicates:
                mark_as_duplicate(repository, duplicate.id, progress.group.canonical.id)

    logger.info(
        f"Duplicate sweep ({sweep.mode.value}) found {len(sweep.groups)} group(s), "
        f"{processed_count} duplicate(s)"
    )
    if auto_mark:
        log_audit_event(
            audit,
            DUPLICATE_SWEEP,
            meta={
                "mode": sweep.mode.value,
                "groups": len(sweep.groups),
                "marked": processed_count,
                "cancelled": sweep.cancelled,
            },
            actor_id=actor_id,
        )
    return DuplicateSweepResult(
        duplicate_groups=list(sweep.groups),
        processed_count=processed_count,
        cancelled=sweep.cancelled,
    )

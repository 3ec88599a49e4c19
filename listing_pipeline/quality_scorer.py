"""
Completeness, verification and recency score (0-100) for a listing.
"""
from datetime import datetime, timezone
from typing import Dict, Optional

from loguru import logger

from listing_pipeline.exceptions import BusinessNotFoundError
from listing_pipeline.models import AbnStatus, BusinessRecord
from listing_pipeline.storage import BusinessRepository

# (attribute, points) for each text field that only needs to be present
COMPLETENESS_POINTS = (
    ("name", 10),
    ("bio", 15),
    ("phone", 10),
    ("email", 10),
    ("website", 10),
    ("address", 5),
)
ABN_VERIFIED_POINTS = 15
GEOLOCATION_POINTS = 5
RECENT_UPDATE_POINTS = ((30, 10), (90, 5))  # (updated within N days, points)
IMAGES_POINTS = 5
HOURS_POINTS = 3
REVIEWS_POINTS = 2


def _present(value) -> bool:
    return value is not None and len(str(value).strip()) > 0


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _recency_points(updated_at: Optional[datetime], now: Optional[datetime]) -> int:
    if updated_at is None:
        return 0
    now = _as_utc(now) if now is not None else datetime.now(timezone.utc)
    days_since_update = (now - _as_utc(updated_at)).days
    for within_days, points in RECENT_UPDATE_POINTS:
        if days_since_update < within_days:
            return points
    return 0


def quality_breakdown(record: BusinessRecord, now: Optional[datetime] = None) -> Dict[str, int]:
    """Points awarded per scoring factor."""
    breakdown = {
        attribute: points if _present(getattr(record, attribute)) else 0
        for attribute, points in COMPLETENESS_POINTS
    }
    breakdown["abn_verified"] = ABN_VERIFIED_POINTS if record.abn_status == AbnStatus.VERIFIED else 0
    breakdown["geolocation"] = (
        GEOLOCATION_POINTS if record.latitude is not None and record.longitude is not None else 0
    )
    breakdown["recency"] = _recency_points(record.updated_at, now)
    breakdown["images"] = IMAGES_POINTS if record.images else 0
    breakdown["business_hours"] = HOURS_POINTS if record.business_hours else 0
    breakdown["reviews"] = REVIEWS_POINTS if record.reviews else 0
    return breakdown


def calculate_quality_score(record: BusinessRecord, now: Optional[datetime] = None) -> int:
    """
    Compute the quality score for a business.

    Args:
        record (BusinessRecord): Business to score.
        now (Optional[datetime]): Reference time for recency; defaults to the current UTC time.

    Returns:
        int: Score in [0, 100].
    """
    score = sum(quality_breakdown(record, now).values())
    return max(0, min(score, 100))


def update_business_quality_score(repository: BusinessRepository, business_id: str) -> int:
    """Recompute and store the score of one business."""
    business = repository.get(business_id)
    if business is None:
        raise BusinessNotFoundError(business_id)
    score = calculate_quality_score(business)
    repository.update(business_id, quality_score=score, updated_at=business.updated_at)
    return score


def batch_update_quality_scores(repository: BusinessRepository, limit: int = 100) -> int:
    """Recompute scores for up to `limit` businesses. Returns how many were updated."""
    updated_count = 0
    for business in repository.find_many()[:limit]:
        score = calculate_quality_score(business)
        repository.update(business.id, quality_score=score, updated_at=business.updated_at)
        updated_count += 1
    logger.info(f"Recalculated quality scores for {updated_count} business(es)")
    return updated_count

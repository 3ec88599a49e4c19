from typing import List, Optional, Sequence
from rapidfuzz.distance import Levenshtein
from listing_pipeline.config import LOOSE_SIMILARITY_THRESHOLD
from listing_pipeline.models import BusinessRecord, DedupeMode, DuplicateReason, DuplicateVerdict
from listing_pipeline.normalizer import canonical_name, fingerprint, normalize_text


def _strict_reason(a: BusinessRecord, b: BusinessRecord) -> Optional[DuplicateReason]:
    fa, fb = fingerprint(a), fingerprint(b)

    if fa.normalized_phone and fa.normalized_phone == fb.normalized_phone:
        return DuplicateReason.PHONE_MATCH

    if fa.normalized_domain and fa.normalized_domain == fb.normalized_domain:
        return DuplicateReason.DOMAIN_MATCH

    if (
        fa.normalized_name
        and fa.normalized_suburb
        and fa.normalized_name == fb.normalized_name
        and fa.normalized_suburb == fb.normalized_suburb
    ):
        return DuplicateReason.NAME_SUBURB_MATCH

    return None


def is_strict_duplicate(a: BusinessRecord, b: BusinessRecord) -> bool:
    """
    Same normalized phone, same website domain, or same name in the same suburb.
    """
    return _strict_reason(a, b) is not None


def name_similarity(a: BusinessRecord, b: BusinessRecord) -> float:
    """
    Edit-distance similarity of two business names in [0, 1].

    Returns 0.0 when either name normalizes to an empty string.
    """
    name1 = canonical_name(a.name)
    name2 = canonical_name(b.name)
    if not name1 or not name2:
        return 0.0
    distance = Levenshtein.distance(name1, name2)
    return 1 - (distance / max(len(name1), len(name2)))


def is_loose_duplicate(
    a: BusinessRecord,
    b: BusinessRecord,
    threshold: float = LOOSE_SIMILARITY_THRESHOLD,
) -> bool:
    """
    Determine whether two businesses in the same suburb have near-identical names.

    Args:
        a (BusinessRecord): First business.
        b (BusinessRecord): Second business.
        threshold (float): Similarity the names must exceed (strictly).

    Returns:
        bool: True if both share a suburb and their name similarity is above threshold.
    """
    suburb1 = normalize_text(a.suburb)
    suburb2 = normalize_text(b.suburb)
    if not suburb1 or suburb1 != suburb2:
        return False
    return name_similarity(a, b) > threshold


def duplicate_reason(
    a: BusinessRecord,
    b: BusinessRecord,
    mode: DedupeMode = DedupeMode.STRICT,
) -> Optional[DuplicateReason]:
    """Why b duplicates a under the given mode, or None. Strict criteria are checked first."""
    mode = DedupeMode(mode)
    if mode is DedupeMode.NONE:
        return None
    reason = _strict_reason(a, b)
    if reason is None and mode is DedupeMode.LOOSE and is_loose_duplicate(a, b):
        reason = DuplicateReason.FUZZY_NAME_MATCH
    return reason


def find_duplicate_verdicts(
    candidate: BusinessRecord,
    pool: Sequence[BusinessRecord],
    mode: DedupeMode = DedupeMode.STRICT,
    exclude_id: Optional[str] = None,
) -> List[DuplicateVerdict]:
    """
    Compare a candidate against every entry of the pool.

    Args:
        candidate (BusinessRecord): The business being created or imported.
        pool (Sequence[BusinessRecord]): Existing businesses to compare against.
        mode (DedupeMode): strict, loose (strict or fuzzy) or none.
        exclude_id (Optional[str]): Id to skip in addition to the candidate's own.

    Returns:
        List[DuplicateVerdict]: One verdict per matching pool entry, in pool order.
    """
    mode = DedupeMode(mode)
    if mode is DedupeMode.NONE:
        return []

    skip = {i for i in (candidate.id, exclude_id) if i is not None}
    verdicts = []
    for existing in pool:
        if existing.id is not None and existing.id in skip:
            continue
        reason = duplicate_reason(candidate, existing, mode)
        if reason is not None:
            verdicts.append(
                DuplicateVerdict(mode=mode, matched_record_id=existing.id, reason=reason)
            )
    return verdicts


def find_duplicates(
    candidate: BusinessRecord,
    pool: Sequence[BusinessRecord],
    mode: DedupeMode = DedupeMode.STRICT,
    exclude_id: Optional[str] = None,
) -> List[BusinessRecord]:
    """Pool entries that duplicate the candidate, in pool order."""
    mode = DedupeMode(mode)
    if mode is DedupeMode.NONE:
        return []
    skip = {i for i in (candidate.id, exclude_id) if i is not None}
    return [
        existing
        for existing in pool
        if not (existing.id is not None and existing.id in skip)
        and duplicate_reason(candidate, existing, mode) is not None
    ]

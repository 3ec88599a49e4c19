"""
Inference of which standard business field a CSV header holds.

The inference is a static pattern table plus one pure function, so each
header's confidence can be checked in isolation.
"""
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Optional

from rapidfuzz import fuzz

from listing_pipeline.models import FieldMappingResult

STANDARD_FIELDS = (
    "name", "email", "phone", "website", "address", "suburb", "postcode",
    "category", "description", "abn", "latitude", "longitude",
)
REQUIRED_FIELDS = ("name", "suburb", "category")
IMPORTANT_FIELDS = ("name", "email", "phone")
# "name" is the most generic field, so headers such as "Suburb Name" are tested
# against every other field first
CONTAINMENT_ORDER = STANDARD_FIELDS[1:] + STANDARD_FIELDS[:1]

CUSTOM_CONFIDENCE = 100
DIRECT_CONFIDENCE = 90
FUZZY_CONFIDENCE = 60
FUZZY_MIN_RATIO = 80


@dataclass(frozen=True)
class FieldPattern:
    field: str
    patterns: FrozenSet[str]
    confidence: int


FIELD_PATTERNS = (
    FieldPattern("abn", frozenset({"abn_number", "australian_business_number", "australian business number"}), 95),
    FieldPattern("email", frozenset({"email_address", "e-mail", "business_email", "contact_email", "mail"}), 90),
    FieldPattern("name", frozenset({"business_name", "business name", "company", "company name", "title", "trading name"}), 85),
    FieldPattern("phone", frozenset({"telephone", "mobile", "contact_number", "phone_number", "tel"}), 85),
    FieldPattern("suburb", frozenset({"city", "town", "locality"}), 85),
    FieldPattern("description", frozenset({"bio", "about", "summary", "details"}), 80),
    FieldPattern("website", frozenset({"url", "web", "homepage", "site"}), 80),
    FieldPattern("address", frozenset({"street", "location", "street_address"}), 80),
    FieldPattern("postcode", frozenset({"post code", "postal_code", "zip"}), 80),
    FieldPattern("latitude", frozenset({"lat"}), 80),
    FieldPattern("longitude", frozenset({"lng", "lon", "long"}), 80),
    FieldPattern("category", frozenset({"type", "industry", "sector", "business_type"}), 75),
)


def _normalize_header(header: str) -> str:
    return header.strip().lower()


def match_header(header: str) -> Optional[tuple]:
    """
    Best standard field for a single header.

    Returns:
        Optional[tuple]: (field, confidence), or None when nothing matches.
    """
    normalized = _normalize_header(header)
    if not normalized:
        return None

    for field in STANDARD_FIELDS:
        if normalized == field:
            return field, DIRECT_CONFIDENCE

    for pattern in FIELD_PATTERNS:
        if normalized in pattern.patterns:
            return pattern.field, pattern.confidence

    for field in CONTAINMENT_ORDER:
        if field in normalized:
            return field, DIRECT_CONFIDENCE

    for pattern in FIELD_PATTERNS:
        if any(p in normalized for p in pattern.patterns if len(p) > 3):
            return pattern.field, pattern.confidence

    best_field, best_ratio = None, 0.0
    for field in STANDARD_FIELDS:
        ratio = fuzz.ratio(normalized, field)
        if ratio > best_ratio:
            best_field, best_ratio = field, ratio
    if best_ratio >= FUZZY_MIN_RATIO:
        return best_field, FUZZY_CONFIDENCE
    return None


def map_headers(headers: Iterable[str], custom_mapping: Optional[Dict[str, str]] = None) -> FieldMappingResult:
    """
    Map CSV headers to standard fields.

    Args:
        headers (Iterable[str]): Header row as read from the file.
        custom_mapping (Optional[Dict[str, str]]): Caller-supplied header -> field overrides.

    Returns:
        FieldMappingResult: detected mapping, per-header confidence, unmapped headers and
                            important fields nothing maps to.
    """
    headers = list(headers)
    detected: Dict[str, str] = {}
    confidence: Dict[str, int] = {}

    for header, field in (custom_mapping or {}).items():
        if header in headers and field in STANDARD_FIELDS:
            detected[header] = field
            confidence[header] = CUSTOM_CONFIDENCE

    for header in headers:
        if header in detected:
            continue
        match = match_header(header)
        if match is not None:
            detected[header], confidence[header] = match

    unmapped = [h for h in headers if h not in detected]
    mapped_fields = set(detected.values())
    missing = [f for f in IMPORTANT_FIELDS if f not in mapped_fields]
    return FieldMappingResult(detected=detected, confidence=confidence, unmapped=unmapped, missing=missing)


def apply_field_mapping(row: Dict[str, object], mapping: Dict[str, str]) -> Dict[str, object]:
    """Rename a row's keys using a header -> field mapping; unmapped keys pass through."""
    mapped: Dict[str, object] = {}
    for key, value in row.items():
        target = mapping.get(key, key)
        if target in mapped and mapped[target] not in (None, "") and value in (None, ""):
            continue
        mapped[target] = value
    return mapped


def missing_required_fields(row: Dict[str, object], required: Iterable[str] = REQUIRED_FIELDS) -> List[str]:
    return [f for f in required if row.get(f) is None or str(row.get(f)).strip() == ""]

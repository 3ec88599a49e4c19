"""
Typed data models for the listing pipeline.
All data structures used throughout the codebase should be defined here.
"""
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class ApprovalStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class AbnStatus(str, Enum):
    NOT_PROVIDED = "NOT_PROVIDED"
    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    INVALID = "INVALID"
    EXPIRED = "EXPIRED"


class BusinessSource(str, Enum):
    MANUAL = "MANUAL"
    CSV = "CSV"
    AUTO_ENRICHED = "AUTO_ENRICHED"
    CLAIMED = "CLAIMED"


class DedupeMode(str, Enum):
    STRICT = "strict"
    LOOSE = "loose"
    NONE = "none"


class DuplicateReason(str, Enum):
    PHONE_MATCH = "phone-match"
    DOMAIN_MATCH = "domain-match"
    NAME_SUBURB_MATCH = "name+suburb-match"
    FUZZY_NAME_MATCH = "fuzzy-name-match"


@dataclass
class BusinessRecord:
    """A directory listing as stored by the repository."""
    name: str
    suburb: Optional[str] = None
    category: Optional[str] = None
    id: Optional[str] = None  # None until persisted
    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    bio: Optional[str] = None
    abn: Optional[str] = None
    abn_status: AbnStatus = AbnStatus.NOT_PROVIDED
    approval_status: ApprovalStatus = ApprovalStatus.PENDING
    quality_score: int = 0
    source: BusinessSource = BusinessSource.MANUAL
    duplicate_of_id: Optional[str] = None
    images: List[Any] = field(default_factory=list)
    business_hours: List[Any] = field(default_factory=list)
    reviews: List[Any] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class NormalizedFingerprint:
    """Comparison keys derived from a record. Never stored."""
    normalized_phone: Optional[str]
    normalized_domain: Optional[str]
    normalized_name: str
    normalized_suburb: str


@dataclass
class DuplicateVerdict:
    """Why a candidate matched one pool entry."""
    mode: DedupeMode
    matched_record_id: Optional[str]
    reason: DuplicateReason


@dataclass
class DuplicateGroup:
    """A canonical business and the businesses that duplicate it."""
    canonical: BusinessRecord
    duplicates: List[BusinessRecord]
    confidence: str  # "high" for strict sweeps, "medium" for loose


@dataclass
class SweepProgress:
    """One step of a duplicate sweep."""
    processed: int
    total: int
    group: Optional[DuplicateGroup] = None

    @property
    def percent(self) -> int:
        if self.total == 0:
            return 100
        return round(self.processed * 100 / self.total)


@dataclass
class DuplicateSweepResult:
    duplicate_groups: List[DuplicateGroup]
    processed_count: int
    cancelled: bool = False


@dataclass
class AbnDetails:
    """Register entry for an ABN."""
    abn: str
    status: str  # ACTIVE, INACTIVE or CANCELLED
    entity_name: Optional[str] = None
    business_names: List[str] = field(default_factory=list)
    state: Optional[str] = None
    postcode: Optional[str] = None


@dataclass
class AbnVerificationResult:
    is_valid: bool
    is_active: Optional[bool] = None  # None when activity could not be established
    details: Optional[AbnDetails] = None
    error: Optional[str] = None


@dataclass
class ModerationVerdict:
    """Outcome of an external moderation check. flagged=None means inconclusive."""
    flagged: Optional[bool]
    categories: List[str] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class ApprovalCriteria:
    has_valid_abn: bool = False
    has_complete_bio: bool = False
    has_contact_info: bool = False
    no_spam_indicators: bool = False
    passes_content_moderation: bool = False
    abn_verification_required: bool = False
    manual_review_required: bool = False
    manual_review_reasons: List[str] = field(default_factory=list)


@dataclass
class ApprovalResult:
    approved: bool
    requires_manual_review: bool
    approval_status: ApprovalStatus
    abn_status: AbnStatus
    reasons: List[str]
    score: int
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ImportDetails:
    imported: List[Dict[str, Any]] = field(default_factory=list)
    duplicates: List[Dict[str, Any]] = field(default_factory=list)
    errors: List[Dict[str, Any]] = field(default_factory=list)
    warnings: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class ImportRunSummary:
    """Counters and bounded per-row details for one import run."""
    successful: int = 0
    duplicates: int = 0
    errors: int = 0
    total_rows: int = 0
    warnings: int = 0
    dry_run: bool = False
    details: ImportDetails = field(default_factory=ImportDetails)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ImportOptions:
    dry_run: bool = False
    dedupe_mode: DedupeMode = DedupeMode.STRICT
    dedupe_within_batch: bool = True
    source: BusinessSource = BusinessSource.CSV
    field_mapping: Dict[str, str] = field(default_factory=dict)
    actor_id: Optional[str] = None
    target: str = "csv-import"


@dataclass
class ExportFilters:
    approval_status: Optional[ApprovalStatus] = None
    abn_status: Optional[AbnStatus] = None
    suburb: Optional[str] = None
    category: Optional[str] = None
    limit: Optional[int] = None
    actor_id: Optional[str] = None


@dataclass
class CsvValidationResult:
    is_valid: bool
    errors: List[str]
    preview: List[Dict[str, Any]]
    total_rows: int


@dataclass
class FieldMappingResult:
    detected: Dict[str, str]  # CSV header -> standard field
    confidence: Dict[str, int]  # CSV header -> 0-100
    unmapped: List[str]
    missing: List[str]


@dataclass
class ImportJob:
    job_id: str
    filename: str
    status: str = "pending"  # pending, processing, completed, failed, cancelled
    progress: int = 0
    total_rows: int = 0
    processed_rows: int = 0
    success_count: int = 0
    duplicate_count: int = 0
    error_count: int = 0
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    summary: Optional[ImportRunSummary] = None
    error: Optional[str] = None


@dataclass
class AuditEvent:
    action: str
    target: Optional[str] = None
    meta: Dict[str, Any] = field(default_factory=dict)
    actor_id: Optional[str] = None
    created_at: Optional[datetime] = None

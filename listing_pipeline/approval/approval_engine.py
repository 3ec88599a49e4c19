"""
Rule-based approval decision for a business submission.

A submission ends in exactly one of three states: APPROVED, REJECTED, or
PENDING awaiting a human (manual review). Anything that goes wrong while
evaluating ends in manual review, never in an approval.
"""
from datetime import datetime, timezone
from typing import Optional

from loguru import logger

from listing_pipeline.approval.abn import abn_status_for
from listing_pipeline.approval.content_checks import (
    is_disposable_email,
    is_high_risk_business,
    passes_content_moderation,
    spam_indicators,
)
from listing_pipeline.config import (
    AUTO_APPROVE_SCORE,
    DETAILED_BIO_LENGTH,
    MIN_BIO_LENGTH,
    MODERATE_CONFIDENCE_SCORE,
    PREFERRED_BIO_LENGTH,
)
from listing_pipeline.models import (
    AbnStatus,
    AbnVerificationResult,
    ApprovalCriteria,
    ApprovalResult,
    ApprovalStatus,
    BusinessRecord,
    ModerationVerdict,
)

SYSTEM_ERROR_REASON = "System error - manual review required"


def evaluate_approval_criteria(
    record: BusinessRecord,
    abn_verification: Optional[AbnVerificationResult] = None,
    moderation_verdict: Optional[ModerationVerdict] = None,
) -> ApprovalCriteria:
    """
    Evaluate every approval criterion for a submission.

    Args:
        record (BusinessRecord): The submitted business.
        abn_verification (Optional[AbnVerificationResult]): Result of verifying record.abn, if any.
        moderation_verdict (Optional[ModerationVerdict]): Verdict of an external moderation check, if one ran.

    Returns:
        ApprovalCriteria: Flags plus the reasons any manual review was requested.
    """
    criteria = ApprovalCriteria()
    review = criteria.manual_review_reasons

    if record.abn and abn_verification is not None:
        criteria.has_valid_abn = bool(abn_verification.is_valid and abn_verification.is_active)
        criteria.abn_verification_required = not criteria.has_valid_abn
        if abn_status_for(abn_verification) in (AbnStatus.INVALID, AbnStatus.EXPIRED):
            review.append("ABN is invalid or no longer active")

    bio = record.bio or ""
    if bio:
        criteria.has_complete_bio = len(bio) >= MIN_BIO_LENGTH
        if len(bio) < PREFERRED_BIO_LENGTH:
            review.append("Short business description")

    criteria.has_contact_info = bool(record.email or record.phone)

    criteria.no_spam_indicators = not spam_indicators(record)

    criteria.passes_content_moderation = passes_content_moderation(record)
    if moderation_verdict is not None:
        if moderation_verdict.flagged:
            criteria.passes_content_moderation = False
        elif moderation_verdict.flagged is None:
            review.append("Content moderation check inconclusive")

    if is_high_risk_business(record):
        review.append("High-risk business category")

    if is_disposable_email(record.email):
        review.append("Disposable email domain")

    criteria.manual_review_required = bool(review)
    return criteria


def calculate_approval_score(criteria: ApprovalCriteria, record: BusinessRecord) -> int:
    score = 0
    if criteria.has_complete_bio:
        score += 25
    if criteria.has_contact_info:
        score += 25
    if criteria.has_valid_abn:
        score += 20
    if criteria.passes_content_moderation:
        score += 15
    if criteria.no_spam_indicators:
        score += 15

    if record.website:
        score += 5
    if record.phone and record.email:
        score += 5
    if record.bio and len(record.bio) > DETAILED_BIO_LENGTH:
        score += 5
    if record.category:
        score += 5
    return min(score, 100)


def determine_approval_decision(
    criteria: ApprovalCriteria,
    record: BusinessRecord,
    abn_verification: Optional[AbnVerificationResult] = None,
) -> ApprovalResult:
    """
    Turn evaluated criteria into a decision.

    Hard rejections (failed moderation, no contact details, spam) win over
    everything else. Otherwise the business is approved only when the score
    clears AUTO_APPROVE_SCORE and nothing asked for a manual review.
    """
    reasons = []
    score = calculate_approval_score(criteria, record)

    if not criteria.passes_content_moderation:
        reasons.append("Failed content moderation review")
    if not criteria.has_contact_info:
        reasons.append("Missing contact information")
    if not criteria.no_spam_indicators:
        reasons.append("Contains spam indicators")
    rejected = bool(reasons)

    requires_manual_review = False
    if not rejected:
        reasons.extend(f"Manual review: {r}" for r in criteria.manual_review_reasons)
        if score >= AUTO_APPROVE_SCORE and not criteria.manual_review_required:
            reasons.append("Meets automatic approval criteria")
        else:
            requires_manual_review = True
            if score >= AUTO_APPROVE_SCORE:
                reasons.append("Requires manual review - high confidence")
            elif score >= MODERATE_CONFIDENCE_SCORE:
                reasons.append("Requires manual review - moderate confidence")
            else:
                reasons.append("Requires manual review - low confidence")

    if rejected:
        approval_status = ApprovalStatus.REJECTED
    elif requires_manual_review:
        approval_status = ApprovalStatus.PENDING
    else:
        approval_status = ApprovalStatus.APPROVED

    if not record.abn:
        abn_status = AbnStatus.NOT_PROVIDED
    elif abn_verification is None:
        abn_status = AbnStatus.PENDING
    else:
        abn_status = abn_status_for(abn_verification)

    return ApprovalResult(
        approved=approval_status is ApprovalStatus.APPROVED,
        requires_manual_review=requires_manual_review,
        approval_status=approval_status,
        abn_status=abn_status,
        reasons=reasons,
        score=score,
        metadata={"evaluated_at": datetime.now(timezone.utc).isoformat()},
    )


def manual_review_fallback(reason: str = SYSTEM_ERROR_REASON, error: Optional[str] = None) -> ApprovalResult:
    metadata = {"evaluated_at": datetime.now(timezone.utc).isoformat()}
    if error:
        metadata["error"] = error
    return ApprovalResult(
        approved=False,
        requires_manual_review=True,
        approval_status=ApprovalStatus.PENDING,
        abn_status=AbnStatus.NOT_PROVIDED,
        reasons=[reason],
        score=0,
        metadata=metadata,
    )


def evaluate_business(
    record: BusinessRecord,
    abn_verification: Optional[AbnVerificationResult] = None,
    moderation_verdict: Optional[ModerationVerdict] = None,
) -> ApprovalResult:
    """Evaluate and decide. Never raises: errors become a manual-review PENDING result."""
    try:
        criteria = evaluate_approval_criteria(record, abn_verification, moderation_verdict)
        return determine_approval_decision(criteria, record, abn_verification)
    except Exception as e:
        logger.exception(f"Approval evaluation failed for {getattr(record, 'name', None)!r}")
        return manual_review_fallback(error=str(e))

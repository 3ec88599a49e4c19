# listing_pipeline/approval/approval_orchestrator.py

from typing import Optional
from loguru import logger
from listing_pipeline.approval.abn import verify_abn
from listing_pipeline.approval.approval_engine import evaluate_business, manual_review_fallback
from listing_pipeline.audit import AuditSink, BUSINESS_APPROVAL_EVALUATION, log_audit_event
from listing_pipeline.clients import OpenAIClient
from listing_pipeline.config import LLM_MODERATION_ENABLED
from listing_pipeline.models import (
    AbnVerificationResult,
    ApprovalResult,
    BusinessRecord,
    ModerationVerdict,
)


async def llm_moderation_check(record: BusinessRecord) -> Optional[ModerationVerdict]:
    """
    Ask the OpenAI moderation endpoint about the listing's name and bio.

    Returns:
        Optional[ModerationVerdict]: None when the check is disabled; a verdict
                                     with flagged=None when it could not complete.
    """
    if not LLM_MODERATION_ENABLED:
        return None

    text = " ".join(p for p in (record.name, record.bio) if p)
    try:
        openai_client = OpenAIClient()
        resp = await openai_client.moderations_create(
            model="omni-moderation-latest",
            input=text,
        )
        result = resp.results[0]
        categories = [name for name, hit in result.categories.model_dump().items() if hit]
        return ModerationVerdict(flagged=bool(result.flagged), categories=categories)
    except Exception as e:
        logger.debug(f"⚠️ LLM moderation failed for {record.name!r}: {e}")
        return ModerationVerdict(flagged=None, error=str(e))


async def process_business_approval(
    record: BusinessRecord,
    audit: Optional[AuditSink] = None,
    actor_id: Optional[str] = None,
    abn_verification: Optional[AbnVerificationResult] = None,
) -> ApprovalResult:
    """
    Orchestrate ABN verification, moderation and the approval rules
    and produce one decision for a submitted business.

    Args:
        record (BusinessRecord): Business to evaluate.
        audit (Optional[AuditSink]): Where to record the evaluation.
        actor_id (Optional[str]): User who submitted; the evaluation is audited only when set.
        abn_verification (Optional[AbnVerificationResult]): Skip the ABN lookup and use this result.

    Returns:
        ApprovalResult: Never raises; failures resolve to manual review.
    """
    try:
        if record.abn and abn_verification is None:
            abn_verification = await verify_abn(record.abn)

        moderation_verdict = await llm_moderation_check(record)

        result = evaluate_business(record, abn_verification, moderation_verdict)
    except Exception as e:
        logger.exception(f"Business approval processing error for {record.name!r}")
        result = manual_review_fallback(error=str(e))

    logger.debug(
        f"⚖️ {record.name!r}: {result.approval_status.value} (score {result.score}) {result.reasons}"
    )

    if actor_id:
        log_audit_event(
            audit,
            BUSINESS_APPROVAL_EVALUATION,
            target=record.id,
            meta={
                "business_name": record.name,
                "approval_status": result.approval_status.value,
                "abn_status": result.abn_status.value,
                "reasons": result.reasons,
                "score": result.score,
                "requires_manual_review": result.requires_manual_review,
            },
            actor_id=actor_id,
        )

    return result

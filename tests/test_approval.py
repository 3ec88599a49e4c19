import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from listing_pipeline.approval import (
    calculate_approval_score,
    determine_approval_decision,
    evaluate_approval_criteria,
    evaluate_business,
    process_business_approval,
)
from listing_pipeline.approval.approval_engine import SYSTEM_ERROR_REASON
from listing_pipeline.audit import BUSINESS_APPROVAL_EVALUATION, InMemoryAuditSink
from listing_pipeline.models import (
    AbnDetails,
    AbnStatus,
    AbnVerificationResult,
    ApprovalStatus,
    BusinessRecord,
    ModerationVerdict,
)

LONG_BIO = "Joe's Cafe serves specialty coffee and fresh pastries every morning in Carlton."
SHORT_BIO = "Friendly local cafe in Carlton"


def cafe(**overrides) -> BusinessRecord:
    values = dict(
        id="biz-1",
        name="Joe's Cafe",
        suburb="Carlton",
        category="Cafe",
        phone="0412 345 678",
        email="owner@joescafe.com.au",
        website="https://joescafe.com.au",
        bio=LONG_BIO,
    )
    values.update(overrides)
    return BusinessRecord(**values)


def verified(status="ACTIVE", is_active=True) -> AbnVerificationResult:
    return AbnVerificationResult(
        is_valid=True,
        is_active=is_active,
        details=AbnDetails(abn="51 824 753 556", status=status),
    )


def test_complete_listing_is_approved():
    result = evaluate_business(cafe())

    assert result.approval_status is ApprovalStatus.APPROVED
    assert result.approved is True
    assert result.requires_manual_review is False
    assert result.reasons == ["Meets automatic approval criteria"]
    assert result.abn_status is AbnStatus.NOT_PROVIDED
    assert result.score == 95


def test_short_bio_requires_manual_review_even_with_high_score():
    assert len(SHORT_BIO) == 30
    record = cafe(bio=SHORT_BIO)

    criteria = evaluate_approval_criteria(record)
    assert criteria.has_complete_bio is True
    assert calculate_approval_score(criteria, record) >= 80

    result = determine_approval_decision(criteria, record)
    assert result.requires_manual_review is True
    assert result.approval_status is ApprovalStatus.PENDING
    assert "Manual review: Short business description" in result.reasons
    assert "Requires manual review - high confidence" in result.reasons


@pytest.mark.parametrize("record", [
    cafe(phone=None, email=None),
    cafe(phone=None, email=None, abn="51 824 753 556", bio=LONG_BIO * 2),
    cafe(phone="", email="", category="Accounting"),
])
def test_missing_contact_is_always_rejected(record):
    result = evaluate_business(record, verified() if record.abn else None)

    assert result.approval_status is ApprovalStatus.REJECTED
    assert result.requires_manual_review is False
    assert "Missing contact information" in result.reasons


def test_spam_is_rejected():
    result = evaluate_business(cafe(bio="Make money fast with our casino nights, book today!!"))

    assert result.approval_status is ApprovalStatus.REJECTED
    assert result.reasons == ["Contains spam indicators"]


def test_inappropriate_content_is_rejected():
    result = evaluate_business(cafe(name="XXX Cafe"))

    assert result.approval_status is ApprovalStatus.REJECTED
    assert "Failed content moderation review" in result.reasons


def test_high_risk_category_requires_review():
    result = evaluate_business(cafe(name="Carlton Tax Agents", category="Accounting", bio=LONG_BIO))

    assert result.approval_status is ApprovalStatus.PENDING
    assert "Manual review: High-risk business category" in result.reasons


def test_disposable_email_requires_review():
    result = evaluate_business(cafe(email="owner@mailinator.com"))

    assert result.approval_status is ApprovalStatus.PENDING
    assert "Manual review: Disposable email domain" in result.reasons


def test_verified_abn_adds_score_and_status():
    record = cafe(abn="51 824 753 556", email=None, website=None, category=None)
    without = evaluate_business(record, AbnVerificationResult(is_valid=False))
    with_abn = evaluate_business(record, verified())

    assert with_abn.abn_status is AbnStatus.VERIFIED
    assert with_abn.score == without.score + 20


def test_expired_abn_requires_review():
    result = evaluate_business(cafe(abn="51 824 753 556"), verified(status="CANCELLED", is_active=False))

    assert result.abn_status is AbnStatus.EXPIRED
    assert result.approval_status is ApprovalStatus.PENDING
    assert "Manual review: ABN is invalid or no longer active" in result.reasons


def test_unverified_abn_is_pending():
    result = evaluate_business(cafe(abn="51 824 753 556"))
    assert result.abn_status is AbnStatus.PENDING


@pytest.mark.parametrize("overrides, expected", [
    (dict(bio=None, email=None, website=None, category=None), "Requires manual review - low confidence"),
    (dict(bio=None, email=None, website=None), "Requires manual review - moderate confidence"),
])
def test_confidence_bands(overrides, expected):
    result = evaluate_business(cafe(**overrides))

    assert result.approval_status is ApprovalStatus.PENDING
    assert result.reasons[-1] == expected


def test_flagged_moderation_rejects():
    verdict = ModerationVerdict(flagged=True, categories=["harassment"])
    result = evaluate_business(cafe(), moderation_verdict=verdict)

    assert result.approval_status is ApprovalStatus.REJECTED
    assert "Failed content moderation review" in result.reasons


def test_inconclusive_moderation_requires_review():
    verdict = ModerationVerdict(flagged=None, error="timeout")
    result = evaluate_business(cafe(), moderation_verdict=verdict)

    assert result.approval_status is ApprovalStatus.PENDING
    assert "Manual review: Content moderation check inconclusive" in result.reasons


def test_evaluation_error_falls_back_to_manual_review():
    with patch(
        "listing_pipeline.approval.approval_engine.evaluate_approval_criteria",
        side_effect=RuntimeError("boom"),
    ):
        result = evaluate_business(cafe())

    assert result.approval_status is ApprovalStatus.PENDING
    assert result.requires_manual_review is True
    assert result.approved is False
    assert result.reasons == [SYSTEM_ERROR_REASON]
    assert result.metadata["error"] == "boom"


@pytest.mark.asyncio
async def test_process_business_approval_verifies_abn_and_audits():
    audit = InMemoryAuditSink()
    record = cafe(abn="51 824 753 556")

    with patch(
        "listing_pipeline.approval.approval_orchestrator.verify_abn",
        AsyncMock(return_value=verified()),
    ) as mock_verify:
        result = await process_business_approval(record, audit=audit, actor_id="user-7")

    mock_verify.assert_awaited_once_with("51 824 753 556")
    assert result.approval_status is ApprovalStatus.APPROVED
    assert result.abn_status is AbnStatus.VERIFIED

    assert len(audit.events) == 1
    event = audit.events[0]
    assert event.action == BUSINESS_APPROVAL_EVALUATION
    assert event.target == "biz-1"
    assert event.actor_id == "user-7"
    assert event.meta["approval_status"] == "APPROVED"


@pytest.mark.asyncio
async def test_process_business_approval_without_actor_is_not_audited():
    audit = InMemoryAuditSink()
    result = await process_business_approval(cafe(), audit=audit)

    assert result.approval_status is ApprovalStatus.APPROVED
    assert audit.events == []


@pytest.mark.asyncio
async def test_process_business_approval_survives_lookup_errors():
    with patch(
        "listing_pipeline.approval.approval_orchestrator.verify_abn",
        AsyncMock(side_effect=RuntimeError("network down")),
    ):
        result = await process_business_approval(cafe(abn="51 824 753 556"))

    assert result.approval_status is ApprovalStatus.PENDING
    assert result.reasons == [SYSTEM_ERROR_REASON]


@pytest.mark.asyncio
async def test_llm_moderation_flag_rejects():
    moderation = MagicMock()
    moderation.flagged = True
    moderation.categories.model_dump.return_value = {"harassment": True, "violence": False}
    mock_response = MagicMock()
    mock_response.results = [moderation]

    with patch("listing_pipeline.approval.approval_orchestrator.LLM_MODERATION_ENABLED", True), \
         patch("listing_pipeline.approval.approval_orchestrator.OpenAIClient") as mock_openai:

        mock_openai_instance = MagicMock()
        mock_openai_instance.moderations_create = AsyncMock(return_value=mock_response)
        mock_openai.return_value = mock_openai_instance

        result = await process_business_approval(cafe())

    assert mock_openai_instance.moderations_create.called
    _, kwargs = mock_openai_instance.moderations_create.call_args
    assert kwargs["model"] == "omni-moderation-latest"
    assert "Joe's Cafe" in kwargs["input"]
    assert result.approval_status is ApprovalStatus.REJECTED
    assert "Failed content moderation review" in result.reasons


@pytest.mark.asyncio
async def test_llm_moderation_failure_requires_review():
    with patch("listing_pipeline.approval.approval_orchestrator.LLM_MODERATION_ENABLED", True), \
         patch("listing_pipeline.approval.approval_orchestrator.OpenAIClient") as mock_openai:

        mock_openai_instance = MagicMock()
        mock_openai_instance.moderations_create = AsyncMock(side_effect=RuntimeError("rate limited"))
        mock_openai.return_value = mock_openai_instance

        result = await process_business_approval(cafe())

    assert result.approval_status is ApprovalStatus.PENDING
    assert "Manual review: Content moderation check inconclusive" in result.reasons

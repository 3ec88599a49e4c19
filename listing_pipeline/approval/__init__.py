"""Approval decision engine: ABN checks, content heuristics and the approval rules."""
from listing_pipeline.approval.approval_engine import (
    calculate_approval_score,
    determine_approval_decision,
    evaluate_approval_criteria,
    evaluate_business,
)
from listing_pipeline.approval.approval_orchestrator import process_business_approval

__all__ = [
    "calculate_approval_score",
    "determine_approval_decision",
    "evaluate_approval_criteria",
    "evaluate_business",
    "process_business_approval",
]

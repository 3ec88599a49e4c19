import re
import time
from datetime import datetime
from typing import Any, Dict, Optional
from loguru import logger
from listing_pipeline.clients import AbrClient
from listing_pipeline.models import AbnDetails, AbnStatus, AbnVerificationResult

ABN_WEIGHTS = (10, 1, 3, 5, 7, 9, 11, 13, 15, 17, 19)
_NON_DIGITS = re.compile(r"\D")


def _digits(abn: Optional[str]) -> str:
    return _NON_DIGITS.sub("", abn or "")


def validate_abn_format(abn: Optional[str]) -> bool:
    """
    Check an ABN's length and checksum.

    Subtract 1 from the first digit, weight each digit, and the weighted
    sum must be divisible by 89.
    """
    digits = _digits(abn)
    if len(digits) != 11:
        return False
    total = 0
    for i, (char, weight) in enumerate(zip(digits, ABN_WEIGHTS)):
        digit = int(char) - 1 if i == 0 else int(char)
        total += digit * weight
    return total % 89 == 0


def format_abn(abn: str) -> str:
    """Format as "XX XXX XXX XXX"; input that is not 11 digits is returned unchanged."""
    digits = _digits(abn)
    if len(digits) != 11:
        return abn
    return f"{digits[:2]} {digits[2:5]} {digits[5:8]} {digits[8:]}"


def clean_abn(abn: Optional[str]) -> Optional[str]:
    """Digits-only ABN, or None when it fails validation."""
    digits = _digits(abn)
    return digits if validate_abn_format(digits) else None


def abn_status_for(result: Optional[AbnVerificationResult]) -> AbnStatus:
    """Map a verification result to the status stored on the business."""
    if result is None:
        return AbnStatus.NOT_PROVIDED
    if not result.is_valid:
        return AbnStatus.INVALID
    status = result.details.status if result.details else None
    if status == "ACTIVE" and result.is_active:
        return AbnStatus.VERIFIED
    if status in ("CANCELLED", "INACTIVE"):
        return AbnStatus.EXPIRED
    return AbnStatus.PENDING


def _details_from_abr(payload: Dict[str, Any], abn: str) -> AbnDetails:
    raw_status = (payload.get("AbnStatus") or "").strip().upper()
    status = raw_status if raw_status in ("ACTIVE", "CANCELLED") else "INACTIVE"
    business_names = payload.get("BusinessName") or []
    if isinstance(business_names, str):
        business_names = [business_names]
    return AbnDetails(
        abn=format_abn(payload.get("Abn") or abn),
        status=status,
        entity_name=payload.get("EntityName") or None,
        business_names=list(business_names),
        state=payload.get("AddressState") or None,
        postcode=payload.get("AddressPostcode") or None,
    )


async def verify_abn(abn: str, skip_lookup: bool = False) -> AbnVerificationResult:
    """
    Validate an ABN and, when the register is configured, confirm it is active.

    Args:
        abn (str): ABN as entered.
        skip_lookup (bool): Only validate the checksum.

    Returns:
        AbnVerificationResult: is_active is None when activity could not be
                               established (format-only check or lookup failure).
    """
    if not validate_abn_format(abn):
        return AbnVerificationResult(is_valid=False, error="Invalid ABN format or checksum")

    digits = _digits(abn)
    format_only = AbnVerificationResult(
        is_valid=True,
        details=AbnDetails(abn=format_abn(digits), status="ACTIVE"),
    )
    if skip_lookup:
        return format_only

    abr_client = AbrClient()
    if not abr_client.configured:
        logger.debug("ABR_WEBSERVICES_GUID not configured, falling back to format validation only")
        return format_only

    start = time.perf_counter()
    logger.debug(f"📥 [{datetime.now().strftime('%H:%M:%S')}] ABR lookup for {digits}")
    try:
        payload = await abr_client.get_abn_details(digits)
    except Exception as e:
        logger.warning(f"⚠️ ABR lookup failed for {digits}: {e}")
        format_only.error = f"ABR lookup failed: {e}"
        return format_only

    duration = time.perf_counter() - start
    logger.debug(f"🏁 [{datetime.now().strftime('%H:%M:%S')}] ABR lookup for {digits} done in {duration:.2f}s")

    message = (payload.get("Message") or "").strip()
    if message and not payload.get("Abn"):
        return AbnVerificationResult(is_valid=False, error=message)

    details = _details_from_abr(payload, digits)
    return AbnVerificationResult(
        is_valid=True,
        is_active=details.status == "ACTIVE",
        details=details,
    )

"""
Canonical forms of contact fields used when comparing listings.

Every function here is pure and idempotent: normalizing an already
normalized value returns it unchanged.
"""
import re
from typing import Optional
from urllib.parse import urlsplit

from listing_pipeline.models import BusinessRecord, NormalizedFingerprint

_NON_DIGITS = re.compile(r"\D")
_INTERNATIONAL_AU = re.compile(r"^61\d{9}$")
_NATIONAL_AU = re.compile(r"^0[2-9]\d{8}$")
_HAS_SCHEME = re.compile(r"^[a-z][a-z0-9+.\-]*://", re.IGNORECASE)
_VALID_HOST = re.compile(r"^[a-z0-9\-]+(\.[a-z0-9\-]+)*$")
_NOT_ALNUM_SPACE = re.compile(r"[^a-z0-9\s]")
_WHITESPACE = re.compile(r"\s+")

# Spelled-out business designators and their short forms
DESIGNATORS = {
    "company": "co",
    "corporation": "corp",
    "incorporated": "inc",
    "limited": "ltd",
    "proprietary": "pty",
}


def normalize_phone(raw: Optional[str]) -> Optional[str]:
    """
    Rewrite an Australian phone number to +61 form.

    Args:
        raw (Optional[str]): Phone number as entered.

    Returns:
        Optional[str]: "+61..." for a recognised number, otherwise None
                       (the number is not used for matching).
    """
    if not raw:
        return None
    digits = _NON_DIGITS.sub("", str(raw))
    if _INTERNATIONAL_AU.match(digits):
        return f"+{digits}"
    if _NATIONAL_AU.match(digits):
        return f"+61{digits[1:]}"
    return None


def normalize_domain(raw: Optional[str]) -> Optional[str]:
    """
    Reduce a website to its lowercase host without a leading "www.".

    Internationalised hosts are returned in their punycode form.
    Returns None for anything that does not parse to a plausible hostname.
    """
    if not raw:
        return None
    url = str(raw).strip()
    if not url:
        return None
    if not _HAS_SCHEME.match(url):
        url = f"https://{url}"
    try:
        host = urlsplit(url).hostname
    except ValueError:
        return None
    if host and not host.isascii():
        try:
            host = host.encode("idna").decode("ascii")
        except UnicodeError:
            return None
    if not host or not _VALID_HOST.match(host):
        return None
    if host.startswith("www."):
        host = host[4:]
    return host or None


def normalize_text(raw: Optional[str]) -> str:
    """Lowercase, keep [a-z0-9] and whitespace, collapse runs of whitespace."""
    if not raw:
        return ""
    text = _NOT_ALNUM_SPACE.sub("", str(raw).lower())
    return _WHITESPACE.sub(" ", text).strip()


def canonical_name(raw: Optional[str]) -> str:
    """normalize_text with business designators folded to their short form."""
    tokens = normalize_text(raw).split(" ")
    return " ".join(DESIGNATORS.get(token, token) for token in tokens if token)


def fingerprint(record: BusinessRecord) -> NormalizedFingerprint:
    return NormalizedFingerprint(
        normalized_phone=normalize_phone(record.phone),
        normalized_domain=normalize_domain(record.website),
        normalized_name=normalize_text(record.name),
        normalized_suburb=normalize_text(record.suburb),
    )

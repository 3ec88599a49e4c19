"""
Keyword and pattern heuristics for spam, inappropriate content and
high-risk business types.

Keyword lists match whole words, case-insensitively, so "class" does not
trip "ass" and "Sussex" does not trip "sex".
"""
import re
from typing import Iterable, List, Optional, Pattern

from listing_pipeline.models import BusinessRecord

SPAM_KEYWORDS = (
    "guaranteed", "free money", "make money fast", "work from home",
    "viagra", "cialis", "weight loss", "get rich quick",
    "casino", "poker", "betting", "loan", "credit repair",
    "mlm", "pyramid", "investment opportunity",
)

INAPPROPRIATE_KEYWORDS = (
    "fuck", "shit", "damn", "bitch", "ass", "asshole", "crap",
    "sex", "porn", "xxx", "adult", "escort",
    "illegal", "drugs", "marijuana", "cocaine",
)

HIGH_RISK_KEYWORDS = (
    "financial", "investment", "loan", "credit", "debt",
    "legal", "law", "lawyer", "attorney",
    "medical", "health", "doctor", "clinic",
    "real estate", "property", "mortgage",
    "insurance", "tax", "accounting",
    "adult", "entertainment", "gambling",
    "cryptocurrency", "crypto", "bitcoin", "trading",
)

DISPOSABLE_EMAIL_DOMAINS = frozenset({
    "10minutemail.com", "guerrillamail.com", "mailinator.com",
    "tempmail.org", "throwaway.email", "temp-mail.org",
    "getnada.com", "maildrop.cc", "sharklasers.com",
})

PHONE_IN_TEXT = re.compile(r"\b\d{1,3}-\d{1,3}-\d{4}\b")
URL_IN_TEXT = re.compile(r"https?://\S+", re.IGNORECASE)
REPEATED_CHARACTERS = re.compile(r"(.)\1{4,}")
HYPE_WORDS = re.compile(
    r"(?:\b(?:free|guaranteed|amazing|incredible)\b\W*){2,}", re.IGNORECASE
)


def _keyword_pattern(keywords: Iterable[str], plural: bool = False) -> Pattern:
    suffix = r"s?" if plural else ""
    alternatives = "|".join(re.escape(k) for k in sorted(keywords, key=len, reverse=True))
    return re.compile(rf"\b(?:{alternatives}){suffix}\b", re.IGNORECASE)


_SPAM_PATTERN = _keyword_pattern(SPAM_KEYWORDS)
_INAPPROPRIATE_PATTERN = _keyword_pattern(INAPPROPRIATE_KEYWORDS)
_HIGH_RISK_PATTERN = _keyword_pattern(HIGH_RISK_KEYWORDS, plural=True)


def _join(*parts: Optional[str]) -> str:
    return " ".join(p for p in parts if p)


def find_spam_keywords(text: str) -> List[str]:
    return sorted({m.group(0).lower() for m in _SPAM_PATTERN.finditer(text or "")})


def spam_indicators(record: BusinessRecord) -> List[str]:
    """
    Describe every spam signal found in a listing.

    Keywords are looked for in the name, bio and website; the pattern
    heuristics run over the name and bio, and raw URLs are only suspicious
    inside the bio.
    """
    indicators = [f"Spam keyword: {k}" for k in find_spam_keywords(_join(record.name, record.bio, record.website))]

    text = _join(record.name, record.bio)
    if PHONE_IN_TEXT.search(text):
        indicators.append("Phone number embedded in text")
    if record.bio and URL_IN_TEXT.search(record.bio):
        indicators.append("URL embedded in description")
    if REPEATED_CHARACTERS.search(text):
        indicators.append("Excessive repeated characters")
    if HYPE_WORDS.search(text):
        indicators.append("Repeated promotional words")
    return indicators


def contains_spam_indicators(record: BusinessRecord) -> bool:
    return bool(spam_indicators(record))


def find_inappropriate_content(text: str) -> List[str]:
    return sorted({m.group(0).lower() for m in _INAPPROPRIATE_PATTERN.finditer(text or "")})


def passes_content_moderation(record: BusinessRecord) -> bool:
    """Keyword moderation over the name and bio."""
    return not find_inappropriate_content(_join(record.name, record.bio))


def is_high_risk_business(record: BusinessRecord) -> bool:
    """Financial, legal, medical, adult and crypto businesses always get a human review."""
    return bool(_HIGH_RISK_PATTERN.search(_join(record.name, record.bio, record.category)))


def is_disposable_email(email: Optional[str]) -> bool:
    if not email or "@" not in email:
        return False
    return email.rsplit("@", 1)[1].strip().lower() in DISPOSABLE_EMAIL_DOMAINS

"""Failure classification and the retry backoff schedule.

Body heuristics run before any status-code rule: challenge pages are often
served with a 200 status.
"""

from typing import Optional

from .models import ErrorCode

# Lower-cased markers of interstitial verification pages
CHALLENGE_MARKERS = (
    "verifying you are human",
    "verify you are human",
    "security check",
    "checking your browser",
    "just a moment...",
    "cf-challenge",
    "challenge-platform",
    "g-recaptcha",
    "h-captcha",
    "captcha",
)

# Visible text of a served verification page. Only these are checked on
# successful responses.
CHALLENGE_PAGE_PHRASES = (
    "verifying you are human",
    "verify you are human",
    "security check",
    "checking your browser",
)

RETRYABLE_STATUS_CODES = (429, 500, 502, 503, 504)

INITIAL_DELAY_MS = 1000
MAX_DELAY_MS = 60000
BACKOFF_MULTIPLIER = 2


def has_challenge_marker(content: Optional[str]) -> bool:
    if not content:
        return False
    lowered = content.lower()
    return any(marker in lowered for marker in CHALLENGE_MARKERS)


def is_challenge_page(text: Optional[str]) -> bool:
    """True if the visible text of a successful response is a verification page."""
    if not text:
        return False
    lowered = text.lower()
    return any(phrase in lowered for phrase in CHALLENGE_PAGE_PHRASES)


def classify_error(message: Optional[str], status_code: Optional[int],
                   content: Optional[str] = None) -> str:
    """Map a failure signal to one of the ErrorCode values."""
    if has_challenge_marker(content):
        return ErrorCode.CAPTCHA

    msg = (message or "").lower()
    status = status_code or 0

    if "captcha" in msg or "challenge" in msg:
        return ErrorCode.CAPTCHA
    if "blocked" in msg or "forbidden" in msg or status == 403:
        return ErrorCode.BLOCKED
    if "rate limit" in msg or "too many" in msg or status == 429:
        return ErrorCode.RATE_LIMITED
    if status >= 500:
        return ErrorCode.NETWORK_ERROR
    return ErrorCode.UNKNOWN


def is_retryable_status(status_code: Optional[int], retryable=RETRYABLE_STATUS_CODES) -> bool:
    return status_code in retryable


def backoff_delay(attempt: int, initial_ms: int = INITIAL_DELAY_MS,
                  max_ms: int = MAX_DELAY_MS, multiplier: int = BACKOFF_MULTIPLIER) -> int:
    """Milliseconds to wait after failed attempt number ``attempt`` (1-based)."""
    if attempt < 1:
        raise ValueError("attempt is 1-based")
    return min(initial_ms * multiplier ** (attempt - 1), max_ms)

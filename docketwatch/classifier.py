"""Single content-signature classifier for upstream responses.

Every strategy funnels its response through :func:`classify_response`, which
answers one of four kinds:

* ``SUCCESS``: a page that plausibly carries case content
* ``BOT_CHALLENGE``: an anti-automation interstitial instead of content
* ``NOT_FOUND``: a genuine empty-result page or a bare search form
* ``TRANSIENT_ERROR``: timeouts, connection failures, 429 and 5xx answers
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from .case_numbers import iter_case_numbers, normalize_case_id

# Only the head of the body is inspected; interstitials are short.
_SCAN_LIMIT = 20_000


class ResponseKind(str, Enum):
    SUCCESS = "success"
    BOT_CHALLENGE = "bot_challenge"
    NOT_FOUND = "not_found"
    TRANSIENT_ERROR = "transient_error"


@dataclass(frozen=True)
class Classification:
    kind: ResponseKind
    reason: str


BOT_CHALLENGE_SIGNATURES: Tuple[Tuple[str, re.Pattern[str]], ...] = (
    ("cloudflare_interstitial", re.compile(r"just a moment\.\.\.|checking your browser", re.I)),
    ("cloudflare_challenge", re.compile(r"cf-chl-|challenge-platform|cf_chl_opt", re.I)),
    ("cloudflare_block", re.compile(r"attention required!? \| cloudflare|cloudflare ray id", re.I)),
    ("cloudflare_prohibited_ip", re.compile(r"dns points to prohibited ip", re.I)),
    ("incapsula", re.compile(r"_incapsula_resource|incapsula incident id", re.I)),
    ("akamai_denied", re.compile(r"<title>\s*access denied\s*</title>|reference #\d+\.[0-9a-f]+", re.I)),
    ("captcha", re.compile(r"g-recaptcha|h-captcha|hcaptcha\.com|captcha-delivery|are you a robot", re.I)),
    ("proof_of_work", re.compile(r"pow\.php|proof[- ]of[- ]work", re.I)),
    ("request_unsuccessful", re.compile(r"request unsuccessful\. incapsula", re.I)),
)

EMPTY_RESULT_SIGNATURES: Tuple[Tuple[str, re.Pattern[str]], ...] = (
    ("no_cases", re.compile(r"no (?:matching )?(?:cases|records|results) (?:were )?found", re.I)),
    ("zero_results", re.compile(r"\b0 (?:cases|records|results)\b", re.I)),
    ("not_found_text", re.compile(r"case (?:number )?(?:was )?not found", re.I)),
    ("no_match", re.compile(r"did not match any", re.I)),
)

_FORM_PATTERN = re.compile(r"<form\b", re.I)
_CASE_WORD = re.compile(r"\bcase\b", re.I)
_MIN_CONTENT_LENGTH = 200
TRANSIENT_STATUSES = frozenset({408, 425, 429, 500, 502, 503, 504, 520, 521, 522, 524})
CHALLENGE_STATUSES = frozenset({401, 403})


def _match_signature(
    text: str, signatures: Tuple[Tuple[str, re.Pattern[str]], ...]
) -> Optional[str]:
    for name, pattern in signatures:
        if pattern.search(text):
            return name
    return None


def classify_response(
    status_code: Optional[int],
    body: str = "",
    *,
    error: Optional[BaseException] = None,
    query: str = "",
) -> Classification:
    """Classify one upstream answer into a :class:`ResponseKind`.

    ``status_code`` is ``None`` when the request itself failed; ``error`` then
    carries the exception for the diagnostic reason.
    """

    if error is not None or status_code is None:
        detail = type(error).__name__ if error is not None else "no response"
        return Classification(ResponseKind.TRANSIENT_ERROR, f"request failed: {detail}")

    head = (body or "")[:_SCAN_LIMIT]
    signature = _match_signature(head, BOT_CHALLENGE_SIGNATURES)
    if signature:
        return Classification(ResponseKind.BOT_CHALLENGE, f"challenge signature {signature} (HTTP {status_code})")
    if status_code in CHALLENGE_STATUSES:
        return Classification(ResponseKind.BOT_CHALLENGE, f"access denied (HTTP {status_code})")
    if status_code in TRANSIENT_STATUSES or status_code >= 500:
        return Classification(ResponseKind.TRANSIENT_ERROR, f"HTTP {status_code}")
    if status_code in (404, 410):
        return Classification(ResponseKind.NOT_FOUND, f"HTTP {status_code}")
    if status_code >= 400:
        return Classification(ResponseKind.TRANSIENT_ERROR, f"HTTP {status_code}")

    empty = _match_signature(head, EMPTY_RESULT_SIGNATURES)
    if empty and not _carries_case(head, query):
        return Classification(ResponseKind.NOT_FOUND, f"empty result ({empty})")
    if len(head.strip()) < _MIN_CONTENT_LENGTH and not (query and query.lower() in head.lower()):
        return Classification(ResponseKind.NOT_FOUND, "empty body")
    if _is_bare_search_form(head, query):
        return Classification(ResponseKind.NOT_FOUND, "search form without results")
    return Classification(ResponseKind.SUCCESS, f"HTTP {status_code}")


def _is_bare_search_form(body: str, query: str) -> bool:
    if not _FORM_PATTERN.search(body):
        return False
    if query and query.lower() in body.lower():
        return False
    return not _CASE_WORD.search(re.sub(r"<[^>]+>", " ", body))


def _carries_case(body: str, query: str) -> bool:
    """True when ``body`` shows the queried case, or any case for name searches.

    Empty-result phrases also turn up inside real case pages (an empty
    hearings table, a "no records found" footer), so they only count when the
    page does not carry the case itself.
    """

    found = set(iter_case_numbers(re.sub(r"<[^>]+>", " ", body)))
    if not found:
        return False
    wanted = normalize_case_id(query) if query else None
    return wanted in found if wanted else True

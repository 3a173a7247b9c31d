"""Outbound text redaction.

Masks credential-shaped substrings before any text leaves the process:
- Bearer credentials ("Bearer abc...")
- Well-known token prefixes (OpenAI/Anthropic sk-, GitHub ghp_/github_pat_,
  Slack xox?-, AWS AKIA..., ntfy tk_)
- JSON Web Tokens
- key=value / key: value / "key": "value" pairs whose key looks sensitive,
  including "Authorization: <scheme> <credential>"
- Long hex runs and long base64-like runs

Every match is replaced by the fixed mask below. The mask never matches a
pattern in a way that changes it, so redact(redact(x)) == redact(x).
"""

import re

MASK = "[REDACTED]"

# ──────────────────────────────────────────────────────────────
# Compiled patterns, applied in order
# ──────────────────────────────────────────────────────────────

# "Bearer <credential>" (Authorization headers pasted into output)
_BEARER = re.compile(r"\b(Bearer)\s+[^\s\"',;]+", re.IGNORECASE)

# Provider token prefixes
_PREFIXED_TOKEN = re.compile(
    r"\b(?:"
    r"sk-[A-Za-z0-9_-]{16,}"
    r"|gh[pousr]_[A-Za-z0-9]{20,}"
    r"|github_pat_[A-Za-z0-9_]{20,}"
    r"|xox[abposr]-[A-Za-z0-9-]{10,}"
    r"|AKIA[0-9A-Z]{16}\b"
    r"|tk_[A-Za-z0-9]{16,}"
    r")"
)

# header.payload.signature, each part base64url
_JWT = re.compile(r"\beyJ[A-Za-z0-9_-]{8,}\.[A-Za-z0-9_-]{8,}\.[A-Za-z0-9_-]{8,}")

# Sensitive key names: a sensitive word optionally joined to other words by _ . -
_SENSITIVE_WORD = (
    r"(?:token|password|passwd|pwd|secret|apikey|api[_-]?key|key|"
    r"credentials?|auth|authorization|private[_-]?key|access[_-]?key)"
)
# Authorization schemes: "Authorization: Basic <b64>" masks scheme and credential together
_AUTH_SCHEME = r"(?:Bearer|Basic|Token|Digest|Negotiate)[ \t]+"
_KEY_VALUE = re.compile(
    r"(?P<key>\b(?:[A-Za-z0-9]+[_.-])*" + _SENSITIVE_WORD + r"(?:[_.-][A-Za-z0-9]+)*)"
    r"(?P<sep>[\"']?\s*[:=]\s*)"
    r"(?P<value>\"[^\"\n]*\"|'[^'\n]*'|(?:" + _AUTH_SCHEME + r")?[\"']?[^\s,;&'\"}]+)",
    re.IGNORECASE,
)

# 32+ hex characters (API keys, hashes of secrets, session secrets)
_LONG_HEX = re.compile(r"\b[0-9a-fA-F]{32,}\b")

# 40+ base64/base64url characters containing both a letter and a digit
_LONG_BASE64 = re.compile(
    r"(?<![A-Za-z0-9+_-])"
    r"(?=[A-Za-z0-9+_-]*[0-9])(?=[A-Za-z0-9+_-]*[A-Za-z])"
    r"[A-Za-z0-9+_-]{40,}={0,2}"
)


def _mask_key_value(match: re.Match[str]) -> str:
    value = match.group("value")
    if len(value) >= 2 and value[0] in "\"'" and value[-1] == value[0]:
        masked = f"{value[0]}{MASK}{value[0]}"
    else:
        masked = MASK
    return f"{match.group('key')}{match.group('sep')}{masked}"


def redact(text: str) -> str:
    """Mask sensitive substrings in outbound text.

    Pure and total: never raises, returns non-string or empty input as-is.
    Masks may differ in length from what they replace.

    Args:
        text: Text about to be sent over a notification channel.

    Returns:
        Text with every recognized credential replaced by [REDACTED].
    """
    if not text or not isinstance(text, str):
        return text

    result = _BEARER.sub(lambda m: f"{m.group(1)} {MASK}", text)
    result = _PREFIXED_TOKEN.sub(MASK, result)
    result = _JWT.sub(MASK, result)
    result = _KEY_VALUE.sub(_mask_key_value, result)
    result = _LONG_HEX.sub(MASK, result)
    result = _LONG_BASE64.sub(MASK, result)
    return result


def contains_secrets(text: str) -> bool:
    """Check whether redact() would change the text."""
    return bool(text) and redact(text) != text

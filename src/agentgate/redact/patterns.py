"""
Built-in redaction patterns.

Covers common PII, cloud and API credentials, and wallet secrets. The
table is compiled once at import and never mutated; callers extend it per
call through Policy.redaction_patterns.

Ordering matters only as a tie-breaker: when two patterns match the same
span length at the same offset, the one listed first wins.
"""

import re

from agentgate.schema import RedactionPattern


def _rule(type_: str, pattern: str, replacement: str, flags: int = 0) -> RedactionPattern:
    return RedactionPattern(type=type_, pattern=re.compile(pattern, flags), replacement=replacement)


# BIP-39 words are 3-8 lowercase letters; runs must be exactly 12 or 24 words
_MNEMONIC_WORD = r"[a-z]{3,8}"

DEFAULT_REDACTION_PATTERNS: tuple[RedactionPattern, ...] = (
    # PII
    _rule("email", r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}", "[EMAIL]"),
    _rule("ssn", r"\b\d{3}-\d{2}-\d{4}\b", "[SSN]"),
    _rule(
        "credit_card",
        r"\b(?:\d{4}[- ]?){3}\d{4}\b|\b3[47]\d{2}[- ]?\d{6}[- ]?\d{5}\b",
        "[CREDIT_CARD]",
    ),
    _rule(
        "phone",
        r"(?<![\d-])(?:\+?1[-.\s]?)?\(?\d{3}\)?[-.\s]\d{3}[-.\s]\d{4}(?![\d-])",
        "[PHONE]",
    ),
    _rule(
        "ip_address",
        r"\b(?:(?:25[0-5]|2[0-4]\d|1?\d?\d)\.){3}(?:25[0-5]|2[0-4]\d|1?\d?\d)\b",
        "[IP_ADDRESS]",
    ),
    _rule(
        "street_address",
        r"\b\d{1,5}\s+(?:[A-Z][a-z]+\s+){1,3}"
        r"(?:Street|St|Avenue|Ave|Road|Rd|Boulevard|Blvd|Lane|Ln|Drive|Dr|Court|Ct|Way|Place|Pl)\b\.?",
        "[ADDRESS]",
    ),
    # Cloud and API credentials
    _rule("aws_access_key", r"\b(?:AKIA|ASIA)[0-9A-Z]{16}\b", "[AWS_KEY]"),
    _rule("gcp_api_key", r"\bAIza[0-9A-Za-z_-]{35}\b", "[GCP_KEY]"),
    _rule("github_token", r"\bgh[pousr]_[A-Za-z0-9]{36,}\b", "[GITHUB_TOKEN]"),
    _rule(
        "api_key",
        r"\b(?:api[_-]?key|api[_-]?secret|secret[_-]?key|access[_-]?token|auth[_-]?token"
        r"|client[_-]?secret|password|passwd|secret|token)\b"
        r"[\"']?\s*[:=]\s*[\"']?[A-Za-z0-9_\-./+=]{8,}[\"']?",
        "[REDACTED]",
        re.IGNORECASE,
    ),
    _rule("bearer_token", r"\bBearer\s+[A-Za-z0-9\-._~+/]+=*", "[REDACTED]", re.IGNORECASE),
    # Wallet secrets
    _rule("private_key", r"\b(?:0x)?[a-fA-F0-9]{64}\b", "[PRIVATE_KEY]"),
    _rule(
        "mnemonic_seed",
        rf"(?<![a-z] )\b(?:{_MNEMONIC_WORD} ){{23}}{_MNEMONIC_WORD}\b(?! [a-z])",
        "[MNEMONIC]",
    ),
    _rule(
        "mnemonic_seed",
        rf"(?<![a-z] )\b(?:{_MNEMONIC_WORD} ){{11}}{_MNEMONIC_WORD}\b(?! [a-z])",
        "[MNEMONIC]",
    ),
    _rule("solana_private_key", r"\b[1-9A-HJ-NP-Za-km-z]{87,88}\b", "[PRIVATE_KEY]"),
    _rule("btc_wif_key", r"\b[5KL][1-9A-HJ-NP-Za-km-z]{50,51}\b", "[PRIVATE_KEY]"),
    _rule(
        "keystore_ciphertext",
        r"\"ciphertext\"\s*:\s*\"[a-fA-F0-9]{32,}\"",
        "[REDACTED_KEYSTORE]",
    ),
    _rule("hd_path", r"\bm(?:/\d+'?){3,}", "[HD_PATH]"),
)

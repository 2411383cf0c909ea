"""
Span-based redaction engine.

How it works:
    1. Every pattern (built-in + policy) is run over the whole input and
       every match becomes a candidate span
    2. Candidates are sorted by start offset, longest first on ties, so a
       specific credential pattern beats a generic one at the same offset
    3. One greedy walk over the sorted candidates applies each span that
       starts at or after the write cursor and skips the rest

The walk guarantees findings are sorted and never overlap. A shorter match
that starts earlier is never displaced by a longer one starting later, so
two partially overlapping spans of different types leave the tail of the
second one untouched.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from agentgate.redact.patterns import DEFAULT_REDACTION_PATTERNS
from agentgate.schema import Finding, Policy, RedactionPattern, RedactResult

logger = logging.getLogger(__name__)

DEFAULT_REPLACEMENT = "[REDACTED]"


@dataclass(frozen=True)
class _Candidate:
    start: int
    end: int
    type: str
    replacement: str
    value: str


def redact(text: str, policy: Policy | None = None) -> RedactResult:
    """
    Remove sensitive data from `text`.

    Args:
        text: Input to sanitize
        policy: Optional policy whose redaction_patterns extend the built-ins

    Returns:
        RedactResult with the sanitized text and one Finding per replaced span

    Example:
        >>> redact("Contact me at user@example.com").redacted
        'Contact me at [EMAIL]'
    """
    patterns: list[RedactionPattern] = list(DEFAULT_REDACTION_PATTERNS)
    if policy is not None and policy.redaction_patterns:
        patterns.extend(policy.redaction_patterns)

    candidates = sorted(
        _collect_candidates(text, patterns),
        key=lambda c: (c.start, -(c.end - c.start)),
    )

    pieces: list[str] = []
    findings: list[Finding] = []
    cursor = 0
    for candidate in candidates:
        if candidate.start < cursor:
            continue
        pieces.append(text[cursor : candidate.start])
        pieces.append(candidate.replacement)
        findings.append(
            Finding(
                type=candidate.type,
                span=(candidate.start, candidate.end),
                value=candidate.value,
            )
        )
        cursor = candidate.end
    pieces.append(text[cursor:])

    if findings:
        logger.debug(
            "Redacted %d span(s): %s",
            len(findings),
            ", ".join(sorted({f.type for f in findings})),
        )

    return RedactResult(redacted="".join(pieces), findings=findings)


def _collect_candidates(text: str, patterns: Iterable[RedactionPattern]) -> list[_Candidate]:
    candidates = []
    for rule in patterns:
        replacement = rule.replacement if rule.replacement is not None else DEFAULT_REPLACEMENT
        for match in rule.compiled().finditer(text):
            # Empty matches would record a finding without removing anything
            if match.end() == match.start():
                continue
            candidates.append(
                _Candidate(
                    start=match.start(),
                    end=match.end(),
                    type=rule.type,
                    replacement=replacement,
                    value=match.group(0),
                )
            )
    return candidates

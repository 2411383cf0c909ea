"""
Layered input-classification guard.

Three passes feed one violation set:
    1. Lexical: built-in and policy injection patterns -> prompt-injection
    2. Heuristic: more than 20 bracket/brace characters -> potential-obfuscation
    3. Deep scan (optional): external classifier -> llm-flagged-injection

The deep scan is fail-open. Any classifier failure is recorded on the result
as provider_error and reported through on_error, and the lexical and
heuristic verdict stands alone.
"""

import logging
import math
import re
from dataclasses import dataclass

from agentgate.classifier.base import (
    DEFAULT_CLASSIFIER_TIMEOUT,
    Classifier,
    ErrorCallback,
    ProviderError,
    classify_safely,
    report_provider_error,
)
from agentgate.guard.patterns import (
    BRACKET_CHARS,
    BRACKET_THRESHOLD,
    DEFAULT_INJECTION_PATTERNS,
)
from agentgate.schema import Classification, GuardResult, Policy, TokenUsage

logger = logging.getLogger(__name__)

VIOLATION_PROMPT_INJECTION = "prompt-injection"
VIOLATION_OBFUSCATION = "potential-obfuscation"
VIOLATION_LLM_FLAGGED = "llm-flagged-injection"


@dataclass
class GuardOptions:
    """
    Options for the pattern guard.

    Attributes:
        deep_scan: Whether to run the classifier pass
        classifier: Classifier used for the deep scan
        on_error: Called with the underlying exception when the deep scan fails
        timeout_seconds: Upper bound on the classifier call
    """

    deep_scan: bool = False
    classifier: Classifier | None = None
    on_error: ErrorCallback | None = None
    timeout_seconds: float = DEFAULT_CLASSIFIER_TIMEOUT


async def guard(
    text: str,
    policy: Policy | None = None,
    options: GuardOptions | None = None,
) -> GuardResult:
    """
    Classify `text` as pass or block.

    Args:
        text: Untrusted input
        policy: Optional policy supplying extra patterns and the CWE map
        options: Deep-scan configuration

    Returns:
        GuardResult; never raises on classifier failure
    """
    policy = policy or Policy()
    options = options or GuardOptions()
    violations: list[str] = []

    if _matches_injection(text, policy):
        violations.append(VIOLATION_PROMPT_INJECTION)

    if sum(1 for ch in text if ch in BRACKET_CHARS) > BRACKET_THRESHOLD:
        violations.append(VIOLATION_OBFUSCATION)

    reasoning: str | None = None
    provider_error: str | None = None

    if options.deep_scan and options.classifier is not None:
        outcome = await classify_safely(options.classifier, text, options.timeout_seconds)
        if isinstance(outcome, ProviderError):
            provider_error = outcome.message
            report_provider_error(outcome, options.on_error)
        else:
            reasoning = outcome.reasoning
            if outcome.classification == Classification.BLOCK:
                violations.append(VIOLATION_LLM_FLAGGED)

    violation_types = list(dict.fromkeys(violations))
    cwe_map = policy.cwe_map or {}
    cwe_codes = list(dict.fromkeys(cwe_map[v] for v in violation_types if cwe_map.get(v)))

    tokens = math.ceil(len(text) / 4)
    result = GuardResult(
        classification=Classification.BLOCK if violation_types else Classification.PASS,
        violation_types=violation_types,
        cwe_codes=cwe_codes,
        reasoning=reasoning,
        provider_error=provider_error,
        usage=TokenUsage(prompt_tokens=tokens, completion_tokens=0, total_tokens=tokens),
    )

    if violation_types:
        logger.info("Guard blocked input: %s", ", ".join(violation_types))
    return result


def _matches_injection(text: str, policy: Policy) -> bool:
    for pattern in DEFAULT_INJECTION_PATTERNS:
        if pattern.search(text):
            return True
    for custom in policy.injection_patterns or []:
        rx = custom if isinstance(custom, re.Pattern) else re.compile(custom, re.IGNORECASE)
        if rx.search(text):
            return True
    return False

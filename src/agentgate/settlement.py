"""
Settlement guard for agentgate.

Scores a proposed payment before an agent settles it. Fast heuristics
always run; an optional classifier deep scan refines borderline cases.

Scoring:
    known-bad recipient          +0.5
    reputation below threshold   +0.3
    amount above high-value      +0.15
    description under 10 chars   +0.1
    zero address recipient       +0.5
    (sum capped at 1.0)

    heuristic score >= 0.7       -> block, classifier not consulted
    classifier says block        -> +0.4 (capped)
    final score >= 0.5           -> block

A classifier failure is fail-open: it is reported through on_error and
the heuristic verdict stands.
"""

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass

from agentgate.classifier.base import (
    DEFAULT_CLASSIFIER_TIMEOUT,
    Classifier,
    ErrorCallback,
    ProviderError,
    classify_safely,
    report_provider_error,
)
from agentgate.schema import (
    Classification,
    RiskAssessment,
    SettlementDecision,
    TransactionMeta,
)

logger = logging.getLogger(__name__)

CONCLUSIVE_SCORE = 0.7
BLOCK_SCORE = 0.5
CLASSIFIER_BLOCK_WEIGHT = 0.4

_ZERO_ADDRESS = re.compile(r"^0x0{40}$", re.IGNORECASE)
_NON_NUMERIC = re.compile(r"[^0-9.]")
_LEADING_NUMBER = re.compile(r"\d+(?:\.\d*)?|\.\d+")


@dataclass
class SettlementOptions:
    """
    Options for the settlement guard.

    Attributes:
        deep_scan: Whether to consult the classifier on non-conclusive scores
        classifier: Classifier used for the deep scan
        on_error: Called with the underlying exception when the deep scan fails
        known_bad_addresses: Recipient addresses that are always suspect
        low_reputation_threshold: Reputation below this adds risk
        high_value_threshold: Amount above this adds risk
        timeout_seconds: Upper bound on the classifier call
    """

    deep_scan: bool = False
    classifier: Classifier | None = None
    on_error: ErrorCallback | None = None
    known_bad_addresses: Iterable[str] = ()
    low_reputation_threshold: float = 0.3
    high_value_threshold: float = 500.0
    timeout_seconds: float = DEFAULT_CLASSIFIER_TIMEOUT


def parse_amount(amount: str) -> float | None:
    """
    Extract the numeric value of an amount string.

    Everything but digits and dots is dropped first, so "$1,250.00 USDC"
    reads as 1250.0. Returns None when no number remains.
    """
    match = _LEADING_NUMBER.match(_NON_NUMERIC.sub("", amount))
    if match is None:
        return None
    return float(match.group(0))


def heuristic_analysis(
    meta: TransactionMeta,
    options: SettlementOptions | None = None,
) -> tuple[float, list[str]]:
    """
    Score a transaction without a classifier.

    Returns:
        (risk_score in [0, 1], human-readable risk factors)
    """
    options = options or SettlementOptions()
    factors: list[str] = []
    score = 0.0

    known_bad = {address.lower() for address in options.known_bad_addresses}
    if meta.recipient_address.lower() in known_bad:
        factors.append("Recipient address is on the known-bad list")
        score += 0.5

    if (
        meta.reputation_score is not None
        and meta.reputation_score < options.low_reputation_threshold
    ):
        factors.append(
            f"Counterparty reputation score ({meta.reputation_score}) is below "
            f"threshold ({options.low_reputation_threshold})"
        )
        score += 0.3

    amount = parse_amount(meta.amount)
    if amount is not None and amount > options.high_value_threshold:
        factors.append(
            f"Transaction amount (${amount:g}) exceeds high-value threshold "
            f"(${options.high_value_threshold:g})"
        )
        score += 0.15

    if len(meta.service_description.strip()) < 10:
        factors.append("Service description is suspiciously short or vague")
        score += 0.1

    if _ZERO_ADDRESS.match(meta.recipient_address):
        factors.append("Recipient is the zero address")
        score += 0.5

    return min(score, 1.0), factors


def build_settlement_prompt(meta: TransactionMeta) -> str:
    """Render the natural-language prompt sent to the classifier."""
    parts = [
        "You are a settlement guard, a financial security analyst specializing "
        "in blockchain transaction risk assessment.",
        "",
        "Analyze the following payment request and determine if it is likely "
        "a scam, overpriced, or otherwise high-risk.",
        "",
        "## Transaction Details",
        f"- **Amount:** {meta.amount} {meta.currency}",
        f"- **Recipient address:** {meta.recipient_address}",
        f'- **Service description:** "{meta.service_description}"',
    ]
    if meta.reputation_score is not None:
        parts.append(
            f"- **Counterparty reputation score:** {meta.reputation_score} "
            "(0 = no history, 1 = perfect)"
        )
    if meta.chain_id is not None:
        parts.append(f"- **Chain ID:** {meta.chain_id}")
    if meta.additional_context:
        parts.append(f"- **Additional context:** {meta.additional_context}")

    parts.extend([
        "",
        "## Risk Indicators to Consider",
        "1. Is the amount reasonable for the described service?",
        "2. Is the reputation score suspiciously low?",
        "3. Does the recipient address appear on known scam lists?",
        "4. Does the service description seem vague, misleading, or designed to extract funds?",
        "5. Are there signs of a honeypot, rug pull, or social engineering?",
        "",
        "Respond with ONLY valid JSON matching this schema:",
        "{",
        '  "classification": "pass" | "block",',
        '  "reasoning": "<detailed explanation of your risk assessment>"',
        "}",
        "",
        '- "block" if the transaction appears high-risk, overpriced, or likely a scam.',
        '- "pass" if the transaction appears legitimate and reasonably priced.',
        "",
        "Be conservative: protecting funds matters more than convenience.",
    ])
    return "\n".join(parts)


async def settlement_guard(
    meta: TransactionMeta,
    options: SettlementOptions | None = None,
) -> RiskAssessment:
    """
    Decide whether a payment should be settled.

    Args:
        meta: Payment metadata
        options: Thresholds and deep-scan configuration

    Returns:
        RiskAssessment; never raises on classifier failure
    """
    options = options or SettlementOptions()
    heuristic_score, factors = heuristic_analysis(meta, options)

    if heuristic_score >= CONCLUSIVE_SCORE:
        logger.info("Settlement to %s blocked by heuristics", meta.recipient_address)
        return RiskAssessment(
            classification=Classification.BLOCK,
            reasoning=f"Blocked by heuristic analysis: {'; '.join(factors)}",
            risk_score=heuristic_score,
            risk_factors=factors,
        )

    if options.deep_scan and options.classifier is not None:
        outcome = await classify_safely(
            options.classifier,
            build_settlement_prompt(meta),
            options.timeout_seconds,
        )
        if isinstance(outcome, ProviderError):
            report_provider_error(outcome, options.on_error)
        else:
            decision = SettlementDecision.model_validate(outcome.model_dump())
            combined = heuristic_score
            if decision.classification == Classification.BLOCK:
                factors.append("Classifier flagged as high-risk")
                combined = min(heuristic_score + CLASSIFIER_BLOCK_WEIGHT, 1.0)
            return RiskAssessment(
                classification=Classification.BLOCK if combined >= BLOCK_SCORE else Classification.PASS,
                reasoning=decision.reasoning,
                risk_score=combined,
                risk_factors=factors,
            )

    if factors:
        reasoning = f"Heuristic analysis: {'; '.join(factors)}"
    else:
        reasoning = "No risk signals detected."
    return RiskAssessment(
        classification=Classification.BLOCK if heuristic_score >= BLOCK_SCORE else Classification.PASS,
        reasoning=reasoning,
        risk_score=heuristic_score,
        risk_factors=factors,
    )

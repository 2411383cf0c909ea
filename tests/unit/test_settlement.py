"""
Unit tests for the settlement guard.

Tests cover:
- Individual heuristic factors and their weights
- Conclusive heuristic blocks (no classifier call)
- Deep scan combination and fail-open behavior
- Amount parsing and prompt rendering
"""

import pytest

from agentgate.schema import Classification, TransactionMeta
from agentgate.settlement import (
    SettlementOptions,
    build_settlement_prompt,
    heuristic_analysis,
    parse_amount,
    settlement_guard,
)

GOOD_ADDRESS = "0x1234567890abcdef1234567890abcdef12345678"
ZERO_ADDRESS = "0x" + "0" * 40


def make_meta(**overrides) -> TransactionMeta:
    fields = {
        "amount": "50",
        "currency": "USDC",
        "recipient_address": GOOD_ADDRESS,
        "service_description": "Data analysis of quarterly sales",
        "reputation_score": 0.9,
    }
    fields.update(overrides)
    return TransactionMeta(**fields)


# =============================================================================
# Heuristics
# =============================================================================


class TestHeuristics:
    """Each factor contributes its weight."""

    @pytest.mark.asyncio
    async def test_clean_transaction_passes(self) -> None:
        result = await settlement_guard(make_meta())
        assert result.classification == Classification.PASS
        assert result.risk_score == 0
        assert result.risk_factors == []
        assert result.reasoning == "No risk signals detected."

    @pytest.mark.asyncio
    async def test_zero_address_blocks(self) -> None:
        result = await settlement_guard(make_meta(recipient_address=ZERO_ADDRESS))
        assert result.classification == Classification.BLOCK
        assert result.risk_score == pytest.approx(0.5)
        assert any("zero address" in f for f in result.risk_factors)

    @pytest.mark.asyncio
    async def test_low_reputation_flagged(self) -> None:
        result = await settlement_guard(make_meta(reputation_score=0.1))
        assert result.classification == Classification.PASS
        assert result.risk_score == pytest.approx(0.3)
        assert any("reputation" in f for f in result.risk_factors)
        assert result.reasoning.startswith("Heuristic analysis: ")

    @pytest.mark.asyncio
    async def test_high_value_flagged(self) -> None:
        result = await settlement_guard(make_meta(amount="$1,250.00"))
        assert result.risk_score == pytest.approx(0.15)
        assert any("high-value" in f for f in result.risk_factors)

    @pytest.mark.asyncio
    async def test_vague_description_flagged(self) -> None:
        result = await settlement_guard(make_meta(service_description="  stuff  "))
        assert result.risk_score == pytest.approx(0.1)
        assert any("vague" in f for f in result.risk_factors)

    @pytest.mark.asyncio
    async def test_known_bad_address_is_case_insensitive(self) -> None:
        options = SettlementOptions(known_bad_addresses=[GOOD_ADDRESS.upper()])
        score, factors = heuristic_analysis(make_meta(), options)
        assert score == pytest.approx(0.5)
        assert any("known-bad" in f for f in factors)

    @pytest.mark.asyncio
    async def test_combined_factors_cap_at_one(self) -> None:
        meta = make_meta(
            recipient_address=ZERO_ADDRESS,
            reputation_score=0.0,
            amount="10000",
            service_description="x",
        )
        options = SettlementOptions(known_bad_addresses=[ZERO_ADDRESS])
        result = await settlement_guard(meta, options)
        assert result.risk_score == 1.0
        assert result.classification == Classification.BLOCK

    @pytest.mark.asyncio
    async def test_thresholds_are_configurable(self) -> None:
        options = SettlementOptions(high_value_threshold=10, low_reputation_threshold=0.95)
        score, factors = heuristic_analysis(make_meta(), options)
        assert score == pytest.approx(0.45)
        assert len(factors) == 2


# =============================================================================
# Conclusive Blocks
# =============================================================================


class TestConclusiveBlock:
    """Scores of 0.7 or more never reach the classifier."""

    @pytest.mark.asyncio
    async def test_heuristic_block_skips_classifier(self, passing_classifier) -> None:
        meta = make_meta(recipient_address=ZERO_ADDRESS, reputation_score=0.1)
        options = SettlementOptions(deep_scan=True, classifier=passing_classifier)
        result = await settlement_guard(meta, options)
        assert result.classification == Classification.BLOCK
        assert result.risk_score >= 0.7
        assert result.reasoning.startswith("Blocked by heuristic analysis: ")
        assert passing_classifier.calls == []


# =============================================================================
# Deep Scan
# =============================================================================


class TestDeepScan:
    """Classifier refinement of non-conclusive scores."""

    @pytest.mark.asyncio
    async def test_classifier_pass_keeps_heuristic_score(self, passing_classifier) -> None:
        options = SettlementOptions(deep_scan=True, classifier=passing_classifier)
        result = await settlement_guard(make_meta(reputation_score=0.1), options)
        assert result.classification == Classification.PASS
        assert result.risk_score == pytest.approx(0.3)
        assert result.reasoning == "looks good"
        assert len(passing_classifier.calls) == 1

    @pytest.mark.asyncio
    async def test_classifier_block_adds_weight(self, blocking_classifier) -> None:
        options = SettlementOptions(deep_scan=True, classifier=blocking_classifier)
        result = await settlement_guard(make_meta(reputation_score=0.1), options)
        assert result.classification == Classification.BLOCK
        assert result.risk_score == pytest.approx(0.7)
        assert "Classifier flagged as high-risk" in result.risk_factors
        assert result.reasoning == "suspicious request"

    @pytest.mark.asyncio
    async def test_classifier_block_alone_stays_below_threshold(self, blocking_classifier) -> None:
        options = SettlementOptions(deep_scan=True, classifier=blocking_classifier)
        result = await settlement_guard(make_meta(), options)
        assert result.risk_score == pytest.approx(0.4)
        assert result.classification == Classification.PASS

    @pytest.mark.asyncio
    async def test_classifier_sees_transaction_details(self, passing_classifier) -> None:
        options = SettlementOptions(deep_scan=True, classifier=passing_classifier)
        await settlement_guard(make_meta(), options)
        prompt = passing_classifier.calls[0]
        assert GOOD_ADDRESS in prompt
        assert "50 USDC" in prompt

    @pytest.mark.asyncio
    async def test_failing_classifier_falls_back(self, failing_classifier) -> None:
        errors: list[BaseException] = []
        options = SettlementOptions(
            deep_scan=True,
            classifier=failing_classifier,
            on_error=errors.append,
        )
        result = await settlement_guard(make_meta(recipient_address=ZERO_ADDRESS), options)
        assert result.classification == Classification.BLOCK
        assert result.risk_score == pytest.approx(0.5)
        assert result.reasoning.startswith("Heuristic analysis: ")
        assert len(errors) == 1


# =============================================================================
# Helpers
# =============================================================================


class TestHelpers:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("50", 50.0),
            ("$1,250.00", 1250.0),
            ("0.5 ETH", 0.5),
            ("1.2.3", 1.2),
            ("free", None),
            ("", None),
        ],
    )
    def test_parse_amount(self, raw: str, expected: float | None) -> None:
        assert parse_amount(raw) == expected

    def test_prompt_includes_optional_fields(self) -> None:
        meta = make_meta(chain_id="8453", additional_context="first purchase")
        prompt = build_settlement_prompt(meta)
        assert "Chain ID:** 8453" in prompt
        assert "first purchase" in prompt
        assert "reputation score:** 0.9" in prompt

    def test_prompt_omits_missing_fields(self) -> None:
        prompt = build_settlement_prompt(make_meta(reputation_score=None))
        assert "reputation score:**" not in prompt
        assert "Chain ID" not in prompt

"""
Unit tests for the tool policy check.

Tests cover:
- No policy / empty policy
- Blocklist and allowlist
- Custom validators (ToolValidator subclasses and plain callables)
- Reason strings
"""

from typing import Any

import pytest

from agentgate.policy import (
    VIOLATION_TOOL_BLOCKED,
    VIOLATION_TOOL_NOT_ALLOWED,
    VIOLATION_TOOL_VALIDATION_FAILED,
    Allow,
    Deny,
    DenyGeneric,
    FunctionValidator,
    ToolValidator,
    guard_tool,
)
from agentgate.schema import Policy


class NoAdminUrls(ToolValidator):
    """Refuses any call whose arguments mention an admin endpoint."""

    def validate(self, tool: str, args: Any) -> Allow | Deny | DenyGeneric:
        if "admin" in str(args):
            return Deny("admin endpoints are off limits")
        return Allow()


# =============================================================================
# Basics
# =============================================================================


class TestGuardToolBasics:
    """Behavior without restrictive configuration."""

    def test_no_policy_allows(self) -> None:
        result = guard_tool("anything")
        assert result.allowed is True
        assert result.violations is None
        assert result.reason is None

    def test_empty_policy_allows(self) -> None:
        assert guard_tool("anything", {}, Policy()).allowed is True

    def test_empty_allowlist_is_ignored(self) -> None:
        """An empty allowlist behaves like no allowlist."""
        assert guard_tool("anything", {}, Policy(tool_allowlist=[])).allowed is True


# =============================================================================
# Lists
# =============================================================================


class TestToolLists:
    """Blocklist and allowlist handling."""

    def test_blocklisted_tool_denied(self) -> None:
        policy = Policy(tool_blocklist=["shell.exec"])
        result = guard_tool("shell.exec", {}, policy)
        assert result.allowed is False
        assert result.violations == [VIOLATION_TOOL_BLOCKED]
        assert result.reason == "Tool 'shell.exec' is explicitly blocked by policy."

    def test_allowlisted_tool_allowed(self) -> None:
        policy = Policy(tool_allowlist=["http.get"])
        assert guard_tool("http.get", {}, policy).allowed is True

    def test_tool_outside_allowlist_denied(self) -> None:
        policy = Policy(tool_allowlist=["http.get"])
        result = guard_tool("fs.write", {}, policy)
        assert result.allowed is False
        assert result.violations == [VIOLATION_TOOL_NOT_ALLOWED]
        assert result.reason == "Tool 'fs.write' failed security policy validation."

    def test_blocklist_wins_reason(self) -> None:
        """A tool both blocked and off the allowlist reports the block."""
        policy = Policy(tool_blocklist=["rm"], tool_allowlist=["ls"])
        result = guard_tool("rm", {}, policy)
        assert result.violations == [VIOLATION_TOOL_BLOCKED, VIOLATION_TOOL_NOT_ALLOWED]
        assert "explicitly blocked" in (result.reason or "")


# =============================================================================
# Validators
# =============================================================================


class TestValidators:
    """Custom per-call validators."""

    def test_deny_reason_surfaced_verbatim(self) -> None:
        policy = Policy(tool_validator=NoAdminUrls())
        result = guard_tool("http.get", {"url": "https://example.com/admin"}, policy)
        assert result.allowed is False
        assert result.violations == [VIOLATION_TOOL_VALIDATION_FAILED]
        assert result.reason == "admin endpoints are off limits"

    def test_deny_short_circuits_list_violations(self) -> None:
        policy = Policy(tool_blocklist=["http.get"], tool_validator=NoAdminUrls())
        result = guard_tool("http.get", {"url": "/admin"}, policy)
        assert result.violations == [VIOLATION_TOOL_VALIDATION_FAILED]
        assert result.reason == "admin endpoints are off limits"

    def test_allow_verdict(self) -> None:
        policy = Policy(tool_validator=NoAdminUrls())
        assert guard_tool("http.get", {"url": "https://example.com"}, policy).allowed is True

    def test_callable_returning_false_is_generic_denial(self) -> None:
        policy = Policy(tool_validator=lambda tool, args: False)
        result = guard_tool("anything", {}, policy)
        assert result.allowed is False
        assert result.violations == [VIOLATION_TOOL_VALIDATION_FAILED]
        assert result.reason == "Tool 'anything' failed security policy validation."

    def test_callable_returning_string_is_denial_with_reason(self) -> None:
        policy = Policy(tool_validator=lambda tool, args: "too risky")
        result = guard_tool("anything", {}, policy)
        assert result.reason == "too risky"

    def test_callable_returning_true_allows(self) -> None:
        policy = Policy(tool_validator=lambda tool, args: True)
        assert guard_tool("anything", {}, policy).allowed is True

    def test_callable_is_wrapped(self) -> None:
        policy = Policy(tool_validator=lambda tool, args: True)
        assert isinstance(policy.tool_validator, FunctionValidator)

    def test_callable_attached_with_model_copy(self) -> None:
        """model_copy(update=...) skips field validators; the callable still works."""
        policy = Policy().model_copy(update={"tool_validator": lambda tool, args: False})
        result = guard_tool("anything", None, policy)
        assert result.allowed is False
        assert result.violations == [VIOLATION_TOOL_VALIDATION_FAILED]

    def test_string_callable_attached_with_model_copy(self) -> None:
        policy = Policy(tool_blocklist=["rm"]).model_copy(
            update={"tool_validator": lambda tool, args: "not today"}
        )
        assert guard_tool("ls", {}, policy).reason == "not today"

    def test_validator_receives_tool_and_args(self) -> None:
        seen: list[tuple[str, Any]] = []

        def record(tool: str, args: Any) -> bool:
            seen.append((tool, args))
            return True

        guard_tool("fs.read", {"path": "a.txt"}, Policy(tool_validator=record))
        assert seen == [("fs.read", {"path": "a.txt"})]

    def test_generic_denial_combines_with_allowlist(self) -> None:
        policy = Policy(tool_allowlist=["ls"], tool_validator=lambda t, a: DenyGeneric())
        result = guard_tool("cat", {}, policy)
        assert result.violations == [VIOLATION_TOOL_NOT_ALLOWED, VIOLATION_TOOL_VALIDATION_FAILED]

    def test_non_callable_validator_rejected(self) -> None:
        with pytest.raises(ValueError):
            Policy(tool_validator="not a validator")

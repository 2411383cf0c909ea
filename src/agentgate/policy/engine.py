"""
Tool policy check for agentgate.

Decides whether an agent may invoke a named tool with given arguments.
This is the first layer the composition wrapper runs, so a refused tool
never sees its arguments redacted, scanned or fetched.

How it works:
    1. No policy means every tool is allowed
    2. tool_blocklist membership -> tool-blocked
    3. A non-empty tool_allowlist that does not contain the tool -> tool-not-allowed
    4. tool_validator runs last; Deny(reason) short-circuits with that reason

Every decision is returned as a ToolGuardResult. Nothing here raises on a
refusal; the wrapper turns refusals into ToolBlockedError.
"""

import logging
from typing import Any

from agentgate.schema import (
    Deny,
    DenyGeneric,
    FunctionValidator,
    Policy,
    ToolGuardResult,
    ToolValidator,
)

logger = logging.getLogger(__name__)

VIOLATION_TOOL_BLOCKED = "tool-blocked"
VIOLATION_TOOL_NOT_ALLOWED = "tool-not-allowed"
VIOLATION_TOOL_VALIDATION_FAILED = "tool-validation-failed"


def guard_tool(tool: str, args: Any = None, policy: Policy | None = None) -> ToolGuardResult:
    """
    Check a tool call against the policy.

    Args:
        tool: Tool name
        args: Tool arguments, passed through to the policy's tool_validator
        policy: Policy to enforce (None allows everything)

    Returns:
        ToolGuardResult with allowed=False and the violations when refused
    """
    if policy is None:
        return ToolGuardResult(allowed=True)

    violations: list[str] = []

    if policy.tool_blocklist and tool in policy.tool_blocklist:
        violations.append(VIOLATION_TOOL_BLOCKED)

    if policy.tool_allowlist and tool not in policy.tool_allowlist:
        violations.append(VIOLATION_TOOL_NOT_ALLOWED)

    validator = policy.tool_validator
    if validator is not None:
        # model_copy(update=...) bypasses field validation, so callables can arrive unwrapped
        if not isinstance(validator, ToolValidator):
            validator = FunctionValidator(validator)
        verdict = validator.validate(tool, args)
        if isinstance(verdict, Deny):
            logger.info("Tool %s denied by validator: %s", tool, verdict.reason)
            return ToolGuardResult(
                allowed=False,
                violations=[VIOLATION_TOOL_VALIDATION_FAILED],
                reason=verdict.reason,
            )
        if isinstance(verdict, DenyGeneric):
            violations.append(VIOLATION_TOOL_VALIDATION_FAILED)

    if not violations:
        return ToolGuardResult(allowed=True)

    if VIOLATION_TOOL_BLOCKED in violations:
        reason = f"Tool '{tool}' is explicitly blocked by policy."
    else:
        reason = f"Tool '{tool}' failed security policy validation."

    logger.info("Tool %s refused: %s", tool, ", ".join(violations))
    return ToolGuardResult(allowed=False, violations=violations, reason=reason)

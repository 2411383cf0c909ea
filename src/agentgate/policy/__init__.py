"""
Tool policy module for agentgate.

The policy check is the first layer in front of every wrapped tool.
"""

from agentgate.policy.engine import (
    VIOLATION_TOOL_BLOCKED,
    VIOLATION_TOOL_NOT_ALLOWED,
    VIOLATION_TOOL_VALIDATION_FAILED,
    guard_tool,
)
from agentgate.schema import (
    Allow,
    Deny,
    DenyGeneric,
    FunctionValidator,
    ToolValidator,
    Verdict,
)

__all__ = [
    "VIOLATION_TOOL_BLOCKED",
    "VIOLATION_TOOL_NOT_ALLOWED",
    "VIOLATION_TOOL_VALIDATION_FAILED",
    "Allow",
    "Deny",
    "DenyGeneric",
    "FunctionValidator",
    "ToolValidator",
    "Verdict",
    "guard_tool",
]

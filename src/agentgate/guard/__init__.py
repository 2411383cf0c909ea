"""
Pattern guard module for agentgate.

Detects prompt injection, obfuscation and (optionally, through a
classifier) semantically hostile input.
"""

from agentgate.guard.engine import (
    VIOLATION_LLM_FLAGGED,
    VIOLATION_OBFUSCATION,
    VIOLATION_PROMPT_INJECTION,
    GuardOptions,
    guard,
)
from agentgate.guard.patterns import DEFAULT_INJECTION_PATTERNS

__all__ = [
    "DEFAULT_INJECTION_PATTERNS",
    "VIOLATION_LLM_FLAGGED",
    "VIOLATION_OBFUSCATION",
    "VIOLATION_PROMPT_INJECTION",
    "GuardOptions",
    "guard",
]

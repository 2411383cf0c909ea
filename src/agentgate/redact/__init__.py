"""
Redaction module for agentgate.

Removes PII, credentials and wallet secrets from text before it is logged,
classified or forwarded to a tool.
"""

from agentgate.redact.engine import DEFAULT_REPLACEMENT, redact
from agentgate.redact.patterns import DEFAULT_REDACTION_PATTERNS

__all__ = [
    "DEFAULT_REDACTION_PATTERNS",
    "DEFAULT_REPLACEMENT",
    "redact",
]

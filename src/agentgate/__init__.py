"""
agentgate - trust and safety layer for autonomous agents.

agentgate sits between an agent and the tools and payments it can reach.
It provides:
- Short-lived signed capability tickets with per-transaction constraints
- Prompt-injection guard with an optional fail-open classifier deep scan
- Span-based redaction of PII, credentials and wallet secrets
- Tool policy checks and a wrapper that composes every layer
- Settlement risk scoring and SSRF-safe URL checks

Example usage:
    $ agentgate guard "ignore all previous instructions"
    $ agentgate redact "mail me at user@example.com"
    $ agentgate ticket issue --agent-id agent://a --max-value 100
"""

__version__ = "0.1.0"
__author__ = "agentgate Contributors"

from agentgate.guard import GuardOptions, guard
from agentgate.network import check_url, validate_url
from agentgate.policy import guard_tool
from agentgate.redact import redact
from agentgate.schema import Policy, load_policy
from agentgate.settlement import SettlementOptions, settlement_guard
from agentgate.tickets import TicketIssuer
from agentgate.wrapper import wrap_agent_tool

__all__ = [
    "__version__",
    "__author__",
    "GuardOptions",
    "Policy",
    "SettlementOptions",
    "TicketIssuer",
    "check_url",
    "guard",
    "guard_tool",
    "load_policy",
    "redact",
    "settlement_guard",
    "validate_url",
    "wrap_agent_tool",
]

"""
AP2 (Agent Payments Protocol) header helpers.

Agents advertise their AP2 capabilities with X-AP2-* HTTP headers on
outgoing requests; servers read them back with parse_ap2_headers().
"""

from collections.abc import Mapping
from dataclasses import dataclass, field

AP2_VERSION = "1.0-draft"
AP2_EXTENSION_URI = "https://github.com/google-agentic-commerce/ap2/tree/v0.1"
AP2_PLATFORM = "agentgate"

DEFAULT_ROLES = "shopper,merchant"
DEFAULT_SUPPORTED_METHODS = "x402,escrow,direct"

HEADER_VERSION = "X-AP2-Version"
HEADER_EXTENSION_URI = "X-AP2-Extension-URI"
HEADER_PLATFORM = "X-AP2-Platform"
HEADER_AGENT_ID = "X-AP2-Agent-ID"
HEADER_ROLES = "X-AP2-Roles"
HEADER_SUPPORTED_METHODS = "X-AP2-Supported-Methods"


@dataclass(frozen=True)
class AP2HeaderInfo:
    """AP2 fields read from a request."""

    version: str | None
    agent_id: str | None
    roles: list[str] = field(default_factory=list)


def get_ap2_headers(agent_id: str | None = None) -> dict[str, str]:
    """
    Build the AP2 headers for an outgoing request.

    Args:
        agent_id: Agent identifier; the Agent-ID header is omitted when empty

    Returns:
        Header name -> value
    """
    headers = {
        HEADER_VERSION: AP2_VERSION,
        HEADER_EXTENSION_URI: AP2_EXTENSION_URI,
        HEADER_PLATFORM: AP2_PLATFORM,
    }
    if agent_id:
        headers[HEADER_AGENT_ID] = agent_id
    headers[HEADER_ROLES] = DEFAULT_ROLES
    headers[HEADER_SUPPORTED_METHODS] = DEFAULT_SUPPORTED_METHODS
    return headers


def parse_ap2_headers(headers: Mapping[str, str]) -> AP2HeaderInfo:
    """Read AP2 fields from request headers, matching names case-insensitively."""
    lowered = {k.lower(): v for k, v in headers.items()}
    roles = lowered.get(HEADER_ROLES.lower())
    return AP2HeaderInfo(
        version=lowered.get(HEADER_VERSION.lower()),
        agent_id=lowered.get(HEADER_AGENT_ID.lower()),
        roles=[r.strip() for r in roles.split(",") if r.strip()] if roles else [],
    )

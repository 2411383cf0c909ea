"""
Capability tickets for agentgate.
"""

from agentgate.tickets.issuer import TicketIssuer

__all__ = ["TicketIssuer"]

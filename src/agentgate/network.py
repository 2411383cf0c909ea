"""
Network safety check for agentgate.

Used by the composition wrapper to refuse URL arguments that point at
internal infrastructure before a tool gets to fetch them.

Security Note:
    - DNS rebinding prevention: every address a hostname resolves to is
      checked, not only the first one
    - Fail-closed: a DNS failure or timeout blocks the URL
    - IPv4-mapped IPv6 addresses (::ffff:10.0.0.1) are unwrapped before
      classification
"""

import asyncio
import ipaddress
import logging
import socket
from dataclasses import dataclass, field
from urllib.parse import urlparse

from agentgate.errors import SsrfBlockedError

logger = logging.getLogger(__name__)

MAX_URL_LENGTH = 2048
DEFAULT_DNS_TIMEOUT = 5.0

ALLOWED_SCHEMES = ("http", "https")

LOCALHOST_NAMES = frozenset({"localhost", "localhost.localdomain", "local"})

# Ranges the ipaddress flags do not cover on every Python version
PRIVATE_IP_RANGES = [
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
    ipaddress.ip_network("127.0.0.0/8"),
    ipaddress.ip_network("169.254.0.0/16"),  # Link-local
    ipaddress.ip_network("100.64.0.0/10"),  # Carrier-grade NAT
    ipaddress.ip_network("::1/128"),  # IPv6 loopback
    ipaddress.ip_network("fc00::/7"),  # IPv6 private
    ipaddress.ip_network("fe80::/10"),  # IPv6 link-local
]


@dataclass(frozen=True)
class UrlCheck:
    """
    Outcome of a URL safety check.

    Attributes:
        safe: Whether the URL may be fetched
        reason: Why it was refused (None when safe)
        resolved_ips: Addresses the hostname resolved to, if resolution ran
    """

    safe: bool
    reason: str | None = None
    resolved_ips: list[str] = field(default_factory=list)


def is_private_ip(ip_str: str) -> bool:
    """
    Check if an IP address is private or otherwise not publicly routable.

    Args:
        ip_str: IP address as a string

    Returns:
        True for private, loopback, link-local, multicast, unspecified and
        reserved addresses. Unparseable input is treated as private.
    """
    try:
        ip = ipaddress.ip_address(ip_str.strip("[]"))
    except ValueError:
        return True

    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        ip = ip.ipv4_mapped

    return (
        ip.is_private
        or ip.is_loopback
        or ip.is_link_local
        or ip.is_multicast
        or ip.is_unspecified
        or ip.is_reserved
        or any(ip in network for network in PRIVATE_IP_RANGES if ip.version == network.version)
    )


async def resolve_hostname(hostname: str, timeout_seconds: float = DEFAULT_DNS_TIMEOUT) -> list[str]:
    """
    Resolve a hostname to its IP addresses.

    Args:
        hostname: The hostname to resolve
        timeout_seconds: Upper bound on the lookup

    Returns:
        Unique IP addresses, IPv4 and IPv6

    Raises:
        socket.gaierror: If DNS resolution fails
        TimeoutError: If the lookup takes longer than timeout_seconds
    """
    loop = asyncio.get_running_loop()
    addr_info = await asyncio.wait_for(
        loop.getaddrinfo(hostname, None, family=socket.AF_UNSPEC, type=socket.SOCK_STREAM),
        timeout=timeout_seconds,
    )
    return list(dict.fromkeys(str(info[4][0]) for info in addr_info))


def is_url_string(value: str) -> bool:
    """Whether a string argument looks like a URL the network check should see."""
    return value.strip().lower().startswith(("http://", "https://", "file://"))


async def check_url(url: str, dns_timeout: float = DEFAULT_DNS_TIMEOUT) -> UrlCheck:
    """
    Decide whether `url` points at a public http(s) destination.

    Args:
        url: URL to check
        dns_timeout: Upper bound on the DNS lookup

    Returns:
        UrlCheck; never raises
    """
    if len(url) > MAX_URL_LENGTH:
        return UrlCheck(safe=False, reason=f"URL exceeds maximum length of {MAX_URL_LENGTH}")

    try:
        parsed = urlparse(url)
        hostname = parsed.hostname
    except ValueError as e:
        return UrlCheck(safe=False, reason=f"Malformed URL: {e}")

    scheme = parsed.scheme.lower()
    if scheme == "file":
        return UrlCheck(safe=False, reason="file:// protocol is not allowed")
    if scheme not in ALLOWED_SCHEMES:
        return UrlCheck(safe=False, reason=f"Protocol '{scheme}' is not allowed")

    if not hostname:
        return UrlCheck(safe=False, reason="URL has no hostname")

    host = hostname.lower().rstrip(".")
    if host in LOCALHOST_NAMES or host.startswith("127.") or host == "::1":
        return UrlCheck(safe=False, reason=f"Localhost is not allowed: {host}")

    # Literal IPs are classified directly
    try:
        ipaddress.ip_address(host)
    except ValueError:
        pass
    else:
        if is_private_ip(host):
            return UrlCheck(safe=False, reason=f"Private IP address is not allowed: {host}")
        return UrlCheck(safe=True, resolved_ips=[host])

    try:
        resolved_ips = await resolve_hostname(host, timeout_seconds=dns_timeout)
    except TimeoutError:
        return UrlCheck(safe=False, reason=f"DNS resolution timed out for {host}")
    except (socket.gaierror, OSError) as e:
        return UrlCheck(safe=False, reason=f"DNS resolution failed for {host}: {e}")

    if not resolved_ips:
        return UrlCheck(safe=False, reason=f"No IP addresses found for {host}")

    for ip in resolved_ips:
        if is_private_ip(ip):
            return UrlCheck(
                safe=False,
                reason=f"DNS rebinding blocked: {host} resolves to private IP {ip}",
                resolved_ips=resolved_ips,
            )

    return UrlCheck(safe=True, resolved_ips=resolved_ips)


async def validate_url(url: str, tool: str = "", dns_timeout: float = DEFAULT_DNS_TIMEOUT) -> None:
    """
    Raise if `url` is not a safe destination.

    Args:
        url: URL to check
        tool: Name of the tool the URL was passed to, for the error context
        dns_timeout: Upper bound on the DNS lookup

    Raises:
        SsrfBlockedError: If the URL fails the check
    """
    result = await check_url(url, dns_timeout=dns_timeout)
    if not result.safe:
        logger.warning("Blocked URL %s: %s", url, result.reason)
        raise SsrfBlockedError(
            tool=tool,
            violations=["ssrf-blocked"],
            url=url,
            reason=result.reason or "unsafe destination",
        )

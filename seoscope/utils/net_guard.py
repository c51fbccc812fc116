"""
seoscope/utils/net_guard.py — SSRF address filter.
Shared by the analyze endpoint (submitted URL) and sitemap discovery
(cross-origin Sitemap: directives).
"""
import asyncio, ipaddress
from urllib.parse import urlparse

BLOCKED = [
    ipaddress.ip_network("10.0.0.0/8"), ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"), ipaddress.ip_network("127.0.0.0/8"),
    ipaddress.ip_network("169.254.0.0/16"), ipaddress.ip_network("0.0.0.0/8"),
    ipaddress.ip_network("::1/128"), ipaddress.ip_network("fc00::/7"),
    ipaddress.ip_network("fe80::/10"),
]


def is_blocked_ip(ip: str) -> bool:
    try:
        return any(ipaddress.ip_address(ip) in n for n in BLOCKED)
    except ValueError:
        return False


async def is_public_host(url: str) -> bool:
    """False when the URL's host is, or resolves to, a blocked address."""
    host = urlparse(url).hostname
    if not host:
        return False
    try:
        ipaddress.ip_address(host)
        return not is_blocked_ip(host)
    except ValueError:
        pass
    try:
        infos = await asyncio.get_running_loop().getaddrinfo(host, None)
    except OSError:
        # Unresolvable hosts are left to the caller's request, which fails on its own
        return True
    return not any(is_blocked_ip(sa[0]) for *_, sa in infos)

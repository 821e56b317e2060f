"""Socket helpers shared by the raw responders."""

import ipaddress
import socket


def wildcard_host() -> str:
    """Address that accepts both IPv4 and IPv6 clients where the OS allows it."""
    return "::" if socket.has_dualstack_ipv6() else "0.0.0.0"


def bind_socket(host: str, port: int, kind: int) -> socket.socket:
    """Create and bind a socket of the given type.

    An empty host binds the wildcard address, dual-stack when available.
    """
    dualstack = not host and socket.has_dualstack_ipv6()
    address = (host or wildcard_host(), port)
    family = socket.AF_INET6 if ":" in address[0] else socket.AF_INET

    sock = socket.socket(family, kind)
    try:
        if dualstack:
            sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_V6ONLY, 0)
        if kind == socket.SOCK_STREAM:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind(address)
    except OSError:
        sock.close()
        raise
    return sock


def unmap_host(host: str) -> str:
    """Turn an IPv4-mapped IPv6 address (::ffff:a.b.c.d) back into a.b.c.d."""
    try:
        addr = ipaddress.ip_address(host)
    except ValueError:
        return host
    if isinstance(addr, ipaddress.IPv6Address) and addr.ipv4_mapped is not None:
        return str(addr.ipv4_mapped)
    return host

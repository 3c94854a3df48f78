"""
Host/Port Splitting
===================
Splits a Host header value into host and port.

A Host without an explicit port is normalized to an empty port instead of
being rejected; no default port is inferred from the scheme.
"""

from typing import Tuple

from ..exceptions import MalformedHostError


def split_host_port(hostport: str) -> Tuple[str, str]:
    """
    Split ``host:port``, ``[ipv6]:port``, ``host`` or ``[ipv6]``.

    Returns:
        (host, port) with brackets stripped from IPv6 literals; port is ""
        when the value carries none

    Raises:
        MalformedHostError: empty value, unbalanced brackets, or an
        unbracketed host with more than one colon
    """
    if not hostport:
        raise MalformedHostError(hostport, "missing host")

    if hostport.startswith("["):
        end = hostport.find("]")
        if end < 0:
            raise MalformedHostError(hostport, "missing ']' in address")
        host = hostport[1:end]
        rest = hostport[end + 1:]
        if rest == "":
            port = ""
        elif rest.startswith(":"):
            port = rest[1:]
        else:
            raise MalformedHostError(hostport, "unexpected text after ']'")
        if "[" in host or "]" in host:
            raise MalformedHostError(hostport, "unexpected '[' in address")
    else:
        colon = hostport.rfind(":")
        if colon < 0:
            host, port = hostport, ""
        else:
            host, port = hostport[:colon], hostport[colon + 1:]
            if ":" in host:
                raise MalformedHostError(hostport, "too many colons in address")
        if "[" in host or "]" in host:
            raise MalformedHostError(hostport, "unexpected '[' or ']' in address")

    if "[" in port or "]" in port:
        raise MalformedHostError(hostport, "unexpected '[' or ']' in port")

    return host, port

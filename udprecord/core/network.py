# core/network.py

import socket
from typing import List, Tuple

import psutil

Address = Tuple[str, int]


def list_ipv4_interfaces() -> List[Tuple[str, str]]:
    """
    Returns a list of (interface_name, ipv4_address)
    """
    interfaces = []

    for name, addrs in psutil.net_if_addrs().items():
        for addr in addrs:
            if addr.family == socket.AF_INET:
                interfaces.append((name, addr.address))

    return interfaces


def default_interface_ip() -> str:
    """
    First IPv4 address of an interface that is up and not loopback.
    Falls back to 127.0.0.1 when there is none.
    """
    stats = psutil.net_if_stats()
    for name, ip in list_ipv4_interfaces():
        if ip.startswith("127."):
            continue
        st = stats.get(name)
        if st is not None and not st.isup:
            continue
        return ip
    return "127.0.0.1"


def parse_address(value: str) -> Address:
    """
    "host:port" -> (host, port). IPv4 only, like the sockets using it.
    """
    host, sep, port_str = value.strip().rpartition(":")
    if not sep or not host:
        raise ValueError(f"Expected host:port, got {value!r}")
    if ":" in host or host.startswith("["):
        raise ValueError(f"IPv6 addresses are not supported: {value!r}")
    try:
        port = int(port_str)
    except ValueError:
        raise ValueError(f"Invalid port in {value!r}") from None
    if not 0 <= port <= 65535:
        raise ValueError(f"Port out of range in {value!r}")
    return host, port


def format_address(address) -> str:
    host, port = address[0], address[1]
    return f"{host}:{port}"

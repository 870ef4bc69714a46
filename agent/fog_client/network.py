"""
Host identity helpers: MAC address list, host name, IP address.

The server identifies a host by the pipe-delimited list of its hardware
addresses (``AA:BB:CC:DD:EE:FF|11:22:33:44:55:66``). Interface discovery is
kept to what the standard library offers; callers that know better pass their
own provider to Transport.
"""

import socket
import uuid

from .config import get_logger

log = get_logger("Communication")


def format_mac(node):
    """48-bit integer -> ``AA:BB:CC:DD:EE:FF``."""
    return ":".join(f"{(node >> shift) & 0xff:02X}" for shift in range(40, -8, -8))


def get_mac_addresses():
    """Pipe-delimited hardware addresses of this host, "" on failure."""
    try:
        return format_mac(uuid.getnode())
    except Exception as e:
        log.error("Could not get MAC addresses")
        log.error("%s", e)
    return ""


def get_host_name():
    return socket.gethostname()


def get_ip_address():
    """First address the host name resolves to, "" if none."""
    try:
        addresses = socket.gethostbyname_ex(get_host_name())[2]
        return addresses[0] if addresses else ""
    except OSError as e:
        log.warning("Could not resolve host address: %s", e)
    return ""

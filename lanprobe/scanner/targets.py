# lanprobe/scanner/targets.py
"""
Target range parsing.

Turns an operator-supplied range string into the ordered list of IPv4
addresses to sweep. Accepted forms:

    "192.168.1.0/24"            CIDR block. For blocks of more than two
                                addresses the network and broadcast
                                addresses are dropped (/24 → 254 hosts).
                                /31 and /32 yield every address.
    "192.168.1.1-192.168.1.50"  Full range, both ends inclusive.
    "10.0.0.1-254"              Short range: the right side replaces the
                                last octet of the left side.
    "192.168.1.7"               Single address.

Errors are raised before any network activity:
    MalformedRange   unparseable address, prefix, or shape
    InvertedRange    range end lies before range start
    RangeTooLarge    expansion would exceed MAX_RANGE_ADDRESSES
"""

from __future__ import annotations

import ipaddress
import logging
import re
import socket
from typing import List

logger = logging.getLogger(__name__)

# Upper bound on (end - start) for a range, and on CIDR host count.
# A range may therefore hold at most MAX_RANGE_SPAN + 1 addresses.
MAX_RANGE_SPAN = 65536

DEFAULT_SUBNET = "192.168.1.0/24"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class RangeError(ValueError):
    """Base class for every range parsing failure."""


class MalformedRange(RangeError):
    pass


class InvertedRange(RangeError):
    pass


class RangeTooLarge(RangeError):
    pass


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def parse_address(text: str) -> ipaddress.IPv4Address:
    """Parse a dotted-quad IPv4 address or raise MalformedRange."""
    try:
        return ipaddress.IPv4Address(text.strip())
    except (ipaddress.AddressValueError, ValueError):
        raise MalformedRange(f"Invalid IPv4 address: {text!r}")


def expand_range(text: str) -> List[ipaddress.IPv4Address]:
    """Expand a range string into its ordered list of addresses."""
    if text is None or not text.strip():
        raise MalformedRange("Empty address range")

    text = text.strip()
    if "/" in text:
        return _expand_cidr(text)
    if "-" in text:
        return _expand_span(text)
    return [parse_address(text)]


def _is_number(text: str) -> bool:
    return re.fullmatch(r"\d+", text, re.ASCII) is not None


def _expand_cidr(text: str) -> List[ipaddress.IPv4Address]:
    parts = text.split("/")
    if len(parts) != 2:
        raise MalformedRange(f"Invalid CIDR notation: {text!r}")

    base = parse_address(parts[0])
    prefix_text = parts[1].strip()
    if not _is_number(prefix_text) or not 0 <= int(prefix_text) <= 32:
        raise MalformedRange(f"Invalid CIDR prefix: {parts[1]!r}")

    network = ipaddress.IPv4Network(f"{base}/{prefix_text}", strict=False)
    if network.num_addresses > MAX_RANGE_SPAN:
        raise RangeTooLarge(
            f"{network} holds {network.num_addresses} addresses "
            f"(limit {MAX_RANGE_SPAN})"
        )

    first = int(network.network_address)
    last = int(network.broadcast_address)
    if network.num_addresses > 2:
        first += 1
        last -= 1
    return [ipaddress.IPv4Address(value) for value in range(first, last + 1)]


def _expand_span(text: str) -> List[ipaddress.IPv4Address]:
    parts = text.split("-")
    if len(parts) != 2:
        raise MalformedRange(f"Invalid address range: {text!r}")

    start = parse_address(parts[0])
    end_text = parts[1].strip()

    if _is_number(end_text):
        last_octet = int(end_text)
        if last_octet > 255:
            raise MalformedRange(f"Invalid last octet: {end_text!r}")
        end = ipaddress.IPv4Address((int(start) & 0xFFFFFF00) | last_octet)
    else:
        end = parse_address(end_text)

    if int(end) < int(start):
        raise InvertedRange(f"Range end {end} is before range start {start}")
    if int(end) - int(start) > MAX_RANGE_SPAN:
        raise RangeTooLarge(
            f"Range {start}-{end} spans {int(end) - int(start) + 1} addresses "
            f"(limit {MAX_RANGE_SPAN + 1})"
        )

    return [ipaddress.IPv4Address(value) for value in range(int(start), int(end) + 1)]


# ---------------------------------------------------------------------------
# Local network detection
# ---------------------------------------------------------------------------

def detect_local_subnet() -> str:
    """
    Best-effort guess at the /24 this machine sits on.

    Opens a UDP socket towards a public address (no packet is sent) and
    reads back the local address the OS picked for that route. Falls back
    to DEFAULT_SUBNET when there is no route.
    """
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        sock.connect(("8.8.8.8", 80))
        local_ip = sock.getsockname()[0]
    except OSError as e:
        logger.debug(f"Local subnet detection failed: {e}")
        return DEFAULT_SUBNET
    finally:
        sock.close()

    network = ipaddress.IPv4Network(f"{local_ip}/24", strict=False)
    return str(network)

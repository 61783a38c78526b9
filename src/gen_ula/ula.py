"""
RFC 4193 Unique Local Address prefix generation.

    MAC -> modified EUI-64 (RFC 4291 appendix A)
    SHA-1(NTP clock bytes ++ EUI-64 bytes) -> low 40 bits = global ID
    fd ++ global ID -> fdXX:XXXX:XXXX::/48
"""

from __future__ import annotations

import hashlib
import ipaddress
import logging
from dataclasses import asdict, dataclass

from .errors import GroupAddressError, InternalInvariantError
from .oui import VendorRegistry, lookup_vendor
from .validate import check_placeholder, format_mac, normalize_clock, normalize_mac

log = logging.getLogger(__name__)

ULA_PREFIX = "fd"

# Universal/local bit flip on the second nibble, individual addresses only
_UL_FLIP = {
    "0": "2",
    "2": "0",
    "4": "6",
    "6": "4",
    "8": "a",
    "a": "8",
    "c": "e",
    "e": "c",
}


@dataclass(frozen=True)
class UlaResult:
    mac: str
    vendor: str
    clock: str
    eui64: str
    global_id: str
    prefix: str

    def to_dict(self) -> dict[str, str]:
        return asdict(self)


def derive_eui64(mac: str) -> str:
    """
    Modified EUI-64 of a 48-bit MAC address.

    >>> derive_eui64("000d3a000001")
    '020d3afffe000001'
    """
    mac = normalize_mac(mac)
    f1, f2, mid, tail = mac[0], mac[1], mac[2:6], mac[6:12]

    if int(f2, 16) & 0x1:
        raise GroupAddressError(format_mac(mac))

    try:
        f2_rev = _UL_FLIP[f2]
    except KeyError:
        raise InternalInvariantError(
            f"MAC address {format_mac(mac)} passed the group bit check, but its "
            f"first octet ({f1}{f2}) has no u/l bit mapping"
        ) from None

    return f"{f1}{f2_rev}{mid}fffe{tail}"


def derive_global_id(clock: str, eui64: str) -> str:
    # Hash the decoded bytes, not the hex text; hashing the text gives
    # prefixes no other RFC 4193 generator reproduces.
    key = bytes.fromhex(clock + eui64)
    digest = hashlib.sha1(key).hexdigest()
    return digest[-10:]


def format_ula(global_id: str, compress: bool = False) -> str:
    """
    Render a 10 hex digit global ID as a /48 prefix.

    Fixed width by default (fd97:00a5:00a4::/48). With compress=True leading
    zeros are suppressed the way `ipaddress` prints it (fd97:a5:a4::/48).
    """
    h = ULA_PREFIX + global_id.lower()
    if len(h) != 12:
        raise InternalInvariantError(f"Global ID {global_id!r} is not 40 bits")

    prefix = f"{h[0:4]}:{h[4:8]}:{h[8:12]}::/48"
    if compress:
        return ipaddress.IPv6Network(prefix).compressed
    return prefix


def generate(
    mac: str,
    clock: str,
    registry: VendorRegistry,
    strict: bool = False,
    compress: bool = False,
) -> UlaResult:
    """
    Run the whole derivation. Checks run in this order: length and
    characters, registered vendor, placeholder NIC half (strict only),
    group bit.
    """
    mac = normalize_mac(mac)
    clock = normalize_clock(clock)

    vendor = lookup_vendor(mac[:6], registry)
    log.debug("MAC %s registered to %s", mac, vendor)

    if strict:
        check_placeholder(mac)

    eui64 = derive_eui64(mac)
    log.debug("EUI-64 %s", eui64)

    global_id = derive_global_id(clock, eui64)
    log.debug("Global ID %s from clock %s", global_id, clock)

    return UlaResult(
        mac=mac,
        vendor=vendor,
        clock=clock,
        eui64=eui64,
        global_id=global_id,
        prefix=format_ula(global_id, compress=compress),
    )

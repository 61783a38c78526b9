from __future__ import annotations

import string

from .errors import PlaceholderAddressError, ValidationError

DELIMITERS = ":-.\n"
MAC_LENGTH = 12
CLOCK_LENGTH = 16

_HEXDIGITS = frozenset(string.hexdigits)
_STRIP = str.maketrans("", "", DELIMITERS)

# NIC halves people type when they can't be bothered to look up their own MAC
PLACEHOLDER_SUFFIXES = frozenset({"010203", "000000", "000001", "000102", "123456"})


def validate_hex(value: str, expected_length: int, field: str) -> str:
    """
    Strip delimiters and return the value as lowercase hex digits.

    Raises ValidationError naming the offending characters, or the expected
    and actual lengths.
    """
    cleaned = value.strip().translate(_STRIP)

    bad = sorted(set(cleaned) - _HEXDIGITS)
    if bad:
        raise ValidationError(field, value, offending="".join(bad))

    if len(cleaned) != expected_length:
        raise ValidationError(
            field, value, expected=expected_length, actual=len(cleaned)
        )

    return cleaned.lower()


def normalize_mac(mac: str) -> str:
    return validate_hex(mac, MAC_LENGTH, "MAC address")


def normalize_clock(clock: str) -> str:
    return validate_hex(clock, CLOCK_LENGTH, "NTP clock")


def format_mac(mac: str) -> str:
    # 000d3a000001 -> 00:0d:3a:00:00:01
    return ":".join(mac[i : i + 2] for i in range(0, len(mac), 2))


def check_placeholder(mac: str) -> None:
    if mac[6:] in PLACEHOLDER_SUFFIXES:
        raise PlaceholderAddressError(
            "MAC address",
            mac,
            message=(
                f"MAC address {format_mac(mac)} is a typical non-existing address. "
                "Please use a REAL MAC address."
            ),
        )

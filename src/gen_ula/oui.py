from __future__ import annotations

import logging
import os
import re
import tempfile
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Protocol

import requests
from manuf import manuf

from .errors import AcquisitionError, VendorNotFoundError
from .validate import validate_hex

log = logging.getLogger(__name__)

IEEE_OUI_URL = "https://standards-oui.ieee.org/oui/oui.txt"

# "00-0D-3A   (hex)		Microsoft Corp."
# "000D3A     (base 16)		Microsoft Corp."
# Older registry dumps indent the base 16 line by two spaces.
_OUI_LINE = re.compile(
    r"^\s*(?P<oui>[0-9A-Fa-f]{2}-?[0-9A-Fa-f]{2}-?[0-9A-Fa-f]{2})"
    r"\s+\((?:hex|base 16)\)\s*(?P<vendor>.*?)\s*$"
)


class VendorRegistry(Protocol):
    def vendor(self, oui: str) -> str | None: ...


class OuiTable:
    """
    In-memory OUI -> vendor mapping, keyed by 6 uppercase hex digits.
    """

    def __init__(self, records: Mapping[str, str]) -> None:
        self._records = {k.upper(): v for k, v in records.items()}

    def __len__(self) -> int:
        return len(self._records)

    def vendor(self, oui: str) -> str | None:
        return self._records.get(oui.upper())


class ManufRegistry:
    """
    Registry backed by the Wireshark `manuf` database shipped with the manuf package.
    """

    def __init__(self, manuf_name: str | None = None) -> None:
        try:
            self._parser = manuf.MacParser(manuf_name=manuf_name)
        except OSError as e:
            raise AcquisitionError(f"Cannot read manuf database: {e}") from e

    def vendor(self, oui: str) -> str | None:
        o = oui.upper()
        mac = f"{o[0:2]}:{o[2:4]}:{o[4:6]}:00:00:00"
        return self._parser.get_manuf_long(mac) or self._parser.get_manuf(mac)


def parse_oui_text(lines: Iterable[str]) -> OuiTable:
    records: dict[str, str] = {}
    for line in lines:
        m = _OUI_LINE.match(line)
        if not m or not m.group("vendor"):
            continue
        oui = m.group("oui").replace("-", "").upper()
        # Both lines of an entry carry the same vendor; first one wins
        records.setdefault(oui, m.group("vendor"))
    return OuiTable(records)


def download_oui_text(url: str = IEEE_OUI_URL, timeout: float = 30.0) -> str:
    log.info("Downloading OUI registry from %s", url)
    try:
        # standards-oui.ieee.org refuses the default python-requests agent
        resp = requests.get(url, timeout=timeout, headers={"User-Agent": "gen-ula"})
        resp.raise_for_status()
    except requests.RequestException as e:
        raise AcquisitionError(f"Cannot download OUI registry from {url}: {e}") from e
    return resp.text


def _write_cache(p: Path, text: str) -> None:
    # Write next to the target and swap it in, so an interrupted run never
    # leaves a truncated registry behind.
    tmp = None
    try:
        with tempfile.NamedTemporaryFile(
            "w", encoding="utf-8", dir=p.parent, prefix=f".{p.name}.", delete=False
        ) as f:
            tmp = Path(f.name)
            f.write(text)
        os.replace(tmp, p)
    except OSError as e:
        if tmp is not None:
            tmp.unlink(missing_ok=True)
        raise AcquisitionError(f"Cannot write OUI registry to {p}: {e}") from e


def load_oui_table(
    path: str | Path,
    url: str = IEEE_OUI_URL,
    refresh: bool = False,
    timeout: float = 30.0,
) -> OuiTable:
    """
    Load the IEEE registry from `path`, downloading it there first when the
    file is missing or `refresh` is set.

    A download is only cached once it parses to at least one record.
    """
    p = Path(path)

    if refresh or not p.exists():
        text = download_oui_text(url, timeout=timeout)
        table = parse_oui_text(text.splitlines())
        if not len(table):
            raise AcquisitionError(f"No OUI records in the registry downloaded from {url}")
        _write_cache(p, text)
    else:
        try:
            text = p.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            raise AcquisitionError(f"Cannot read OUI registry {p}: {e}") from e
        table = parse_oui_text(text.splitlines())
        if not len(table):
            raise AcquisitionError(
                f"No OUI records found in {p}. Use --refresh to download it again."
            )

    log.debug("Loaded %d OUI records from %s", len(table), p)
    return table


def lookup_vendor(mac_prefix: str, registry: VendorRegistry) -> str:
    """
    Return the vendor registered for a 6 hex digit OUI.

    A miss means the address was never issued, so it raises VendorNotFoundError.
    """
    oui = validate_hex(mac_prefix, 6, "OUI").upper()

    vendor = registry.vendor(oui)
    if not vendor:
        raise VendorNotFoundError(oui)
    return vendor

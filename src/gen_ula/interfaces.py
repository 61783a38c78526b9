from __future__ import annotations

import logging
from dataclasses import dataclass

import psutil

from .errors import AcquisitionError

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class HardwareInterface:
    name: str
    mac: str
    is_up: bool

    @property
    def locally_administered(self) -> bool:
        # Second least significant bit of the first octet
        return bool(int(self.mac[:2], 16) & 0b00000010)


# -------------------------------------------------
# Interface discovery
# -------------------------------------------------

def list_hardware_interfaces() -> list[HardwareInterface]:
    stats = psutil.net_if_stats()
    found: list[HardwareInterface] = []

    for name, addrs in psutil.net_if_addrs().items():
        for a in addrs:
            if a.family != psutil.AF_LINK or not a.address:
                continue

            mac = a.address.replace("-", ":").lower()
            # Tunnels and loopback report odd lengths or all zeros
            if len(mac) != 17 or mac == "00:00:00:00:00:00":
                continue

            st = stats.get(name)
            found.append(HardwareInterface(name=name, mac=mac, is_up=bool(st and st.isup)))

    found.sort(key=lambda i: i.name)
    return found


def detect_mac(name: str | None = None) -> str:
    """
    MAC of the named interface, or a best guess:
    1) interfaces that are up
    2) globally administered addresses before random/virtual ones
    3) name order
    """
    interfaces = list_hardware_interfaces()

    if name:
        for i in interfaces:
            if i.name == name:
                log.debug("Using %s from interface %s", i.mac, i.name)
                return i.mac
        raise AcquisitionError(f"No hardware address found for interface {name!r}")

    if not interfaces:
        raise AcquisitionError("Could not auto-detect a hardware address. Use --mac.")

    ranked = sorted(interfaces, key=lambda i: (not i.is_up, i.locally_administered))
    best = ranked[0]
    log.info("Auto-detected MAC %s on interface %s", best.mac, best.name)
    return best.mac

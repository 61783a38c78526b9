from __future__ import annotations

import logging
import socket
from datetime import UTC, datetime, timedelta
from typing import Protocol

from scapy.layers.ntp import NTPHeader

from .errors import AcquisitionError
from .validate import normalize_clock

log = logging.getLogger(__name__)

DEFAULT_NTP_SERVER = "0.pool.ntp.org"
NTP_PORT = 123

_NTP_EPOCH = datetime(1900, 1, 1, tzinfo=UTC)
_NTP_ERA_SECONDS = 2**32
_MODE_CLIENT = 3
_MODE_SERVER = 4


class TimeSource(Protocol):
    def now(self) -> str: ...


class FixedClock:
    """
    Operator supplied clock, e.g. "dcf4268b.208dd000", for repeatable output.
    """

    def __init__(self, value: str) -> None:
        self.value = normalize_clock(value)

    def now(self) -> str:
        return self.value


class NtpClock:
    def __init__(
        self,
        server: str = DEFAULT_NTP_SERVER,
        port: int = NTP_PORT,
        timeout: float = 5.0,
    ) -> None:
        self.server = server
        self.port = port
        self.timeout = timeout

    def _exchange(self, payload: bytes) -> bytes:
        try:
            infos = socket.getaddrinfo(self.server, self.port, type=socket.SOCK_DGRAM)
        except socket.gaierror as e:
            raise AcquisitionError(f"Cannot resolve NTP server {self.server}: {e}") from e

        family, type_, proto, _, addr = infos[0]
        try:
            with socket.socket(family, type_, proto) as s:
                s.settimeout(self.timeout)
                s.sendto(payload, addr)
                data, _ = s.recvfrom(1024)
        except OSError as e:
            raise AcquisitionError(f"NTP query to {self.server} failed: {e}") from e
        return data

    def now(self) -> str:
        """
        Query the server once and return its transmit timestamp as 16 hex digits.
        """
        log.debug("Querying NTP server %s:%d", self.server, self.port)
        request = NTPHeader(version=4, mode=_MODE_CLIENT)
        data = self._exchange(bytes(request))

        if len(data) < 48:
            raise AcquisitionError(
                f"Short NTP reply from {self.server} ({len(data)} bytes)"
            )

        reply = NTPHeader(data)
        if reply.mode != _MODE_SERVER:
            raise AcquisitionError(
                f"Unexpected NTP mode {reply.mode} in reply from {self.server}"
            )
        if reply.stratum == 0:
            raise AcquisitionError(f"NTP server {self.server} sent a kiss-o'-death reply")

        sent = reply.getfieldval("sent")
        if not sent:
            raise AcquisitionError(f"NTP server {self.server} sent an empty timestamp")

        clock = f"{int(sent):016x}"
        log.info("NTP clock from %s: %s", self.server, clock)
        return clock


def split_clock(clock: str) -> str:
    # dcf4268b208dd000 -> dcf4268b.208dd000
    return f"{clock[:8]}.{clock[8:]}"


def ntp_to_datetime(clock: str, now: datetime | None = None) -> datetime:
    """
    UTC time of a 16 hex digit NTP timestamp.

    The 32-bit seconds field wraps every ~136 years (next in 2036), so the
    era closest to `now` (default: the system clock) is picked.
    """
    value = int(normalize_clock(clock), 16)
    seconds = value >> 32
    fraction = (value & 0xFFFFFFFF) / 2**32

    if now is None:
        now = datetime.now(UTC)
    elapsed = (now - _NTP_EPOCH).total_seconds()
    era = max(0, round((elapsed - seconds) / _NTP_ERA_SECONDS))

    return _NTP_EPOCH + timedelta(seconds=era * _NTP_ERA_SECONDS + seconds + fraction)


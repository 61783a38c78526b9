from __future__ import annotations


class UlaError(Exception):
    """Base class for every failure that aborts a ULA derivation."""


class ValidationError(UlaError):
    def __init__(
        self,
        field: str,
        value: str,
        *,
        offending: str = "",
        expected: int | None = None,
        actual: int | None = None,
        message: str | None = None,
    ) -> None:
        self.field = field
        self.value = value
        self.offending = offending
        self.expected = expected
        self.actual = actual

        if message is None:
            if offending:
                message = f'{field} "{value}" contains invalid characters: {offending!r}'
            else:
                message = (
                    f'{field} "{value}" must be {expected} hex digits long, got {actual}'
                )
        super().__init__(message)


class PlaceholderAddressError(ValidationError):
    """MAC looks made up (e.g. xx:xx:xx:01:02:03)."""


class GroupAddressError(UlaError):
    def __init__(self, mac: str) -> None:
        self.mac = mac
        super().__init__(f"MAC address {mac} is a group (multicast) address")


class VendorNotFoundError(UlaError):
    def __init__(self, oui: str) -> None:
        self.oui = oui
        super().__init__(
            f"OUI {oui} is not registered to IEEE. Please use a REAL MAC address."
        )


class AcquisitionError(UlaError):
    """A time source, registry or interface could not be read."""


class InternalInvariantError(UlaError):
    """Unreachable state reached: a bug in gen-ula, not in the input."""

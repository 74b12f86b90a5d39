"""
Device fingerprint value object.

Captured once per login attempt and copied into both the session row and
the login record.  Immutable; carries no identity of its own.
"""

from dataclasses import asdict, dataclass

UNKNOWN = "Unknown"
LOCAL_LOCATION = "Local"
UNKNOWN_LOCATION = "Unknown Location"

# Location values that carry no geographic signal
_NON_LOCATIONS = {"", UNKNOWN.lower(), UNKNOWN_LOCATION.lower(), LOCAL_LOCATION.lower()}


def is_known_location(location: str | None) -> bool:
    return bool(location) and location.strip().lower() not in _NON_LOCATIONS


@dataclass(frozen=True)
class DeviceInfo:
    ip: str = ""
    user_agent: str = ""
    browser: str = UNKNOWN
    os: str = UNKNOWN
    device_type: str = UNKNOWN
    location: str = UNKNOWN_LOCATION

    @property
    def signature(self) -> str:
        return f"{self.browser}-{self.os}"

    @property
    def has_known_location(self) -> bool:
        return is_known_location(self.location)

    def as_dict(self) -> dict[str, str]:
        return asdict(self)

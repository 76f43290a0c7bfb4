"""Jetson device profiles.

Each supported board family is a member of the closed ``JetsonDevice``
enum and carries its ``DeviceProfile``. Resolution is an exact,
case-sensitive match against the profile aliases; anything else is an
``UnknownDeviceError``.
"""

from dataclasses import dataclass
from enum import Enum

from jetson_llama_build.errors import UnknownDeviceError

DEFAULT_DEVICE = "orin"


@dataclass(frozen=True)
class DeviceProfile:
    """Build profile for a Jetson board family.

    Attributes:
        name: Canonical device identifier.
        aliases: Accepted spellings, including the canonical name.
        cuda_architecture: Compute capability passed to CMAKE_CUDA_ARCHITECTURES.
        display_name: Human-readable label.
    """

    name: str
    aliases: tuple[str, ...]
    cuda_architecture: str
    display_name: str


class JetsonDevice(Enum):
    """Supported Jetson board families."""

    ORIN = DeviceProfile(
        name="orin",
        aliases=("orin", "orin-nano", "orin-nx", "agx-orin"),
        cuda_architecture="87",
        display_name="Jetson Orin",
    )
    XAVIER = DeviceProfile(
        name="xavier",
        aliases=("xavier", "xavier-nx", "agx-xavier"),
        cuda_architecture="72",
        display_name="Jetson Xavier",
    )
    TX2 = DeviceProfile(
        name="tx2",
        aliases=("tx2",),
        cuda_architecture="62",
        display_name="Jetson TX2",
    )
    NANO = DeviceProfile(
        name="nano",
        aliases=("nano",),
        cuda_architecture="53",
        display_name="Jetson Nano",
    )

    @property
    def profile(self) -> DeviceProfile:
        """Return the profile carried by this member."""
        return self.value


def supported_aliases() -> list[str]:
    """Return every accepted device token, in table order."""
    return [alias for device in JetsonDevice for alias in device.profile.aliases]


def resolve_device(token: str = DEFAULT_DEVICE) -> DeviceProfile:
    """Resolve a device token to its profile.

    Args:
        token: Device token as typed by the operator.

    Returns:
        The matching DeviceProfile.

    Raises:
        UnknownDeviceError: If the token is not a known alias.
    """
    for device in JetsonDevice:
        if token in device.profile.aliases:
            return device.profile
    raise UnknownDeviceError(token, supported_aliases())


__all__ = [
    "DEFAULT_DEVICE",
    "DeviceProfile",
    "JetsonDevice",
    "resolve_device",
    "supported_aliases",
]

"""Map (profile number, process index) to a management endpoint.

Each profile owns a block of 64 consecutive ports above the base port;
the process index selects a port within the block::

    port = base_port + (((profile_number - 1) << 6) | process_index)

so every valid pair gets its own port and no runtime state is needed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

    from vpnctl.config.settings import ProfileSettings

DEFAULT_BASE_PORT = 11940
MAX_PROFILE_NUMBER = 64
MAX_PROCESSES = 64

_PROCESS_BITS = 6


class AddressingRangeError(ValueError):
    """Profile number or process index outside the addressable range.

    Always a configuration mistake; never retried.
    """


@dataclass(frozen=True)
class Endpoint:
    profile_id: str
    process_index: int
    host: str
    port: int

    @property
    def address(self) -> str:
        return f"tcp://{self.host}:{self.port}"

    def __str__(self) -> str:
        return self.address


def endpoint_port(
    profile_number: int,
    process_index: int,
    base_port: int = DEFAULT_BASE_PORT,
) -> int:
    if not 1 <= profile_number <= MAX_PROFILE_NUMBER:
        msg = f"1 <= profileNumber <= {MAX_PROFILE_NUMBER} (got {profile_number})"
        raise AddressingRangeError(msg)
    if not 0 <= process_index < MAX_PROCESSES:
        msg = f"0 <= processNumber < {MAX_PROCESSES} (got {process_index})"
        raise AddressingRangeError(msg)
    return base_port + (((profile_number - 1) << _PROCESS_BITS) | process_index)


def endpoint(
    profile: ProfileSettings,
    process_index: int,
    base_port: int = DEFAULT_BASE_PORT,
) -> Endpoint:
    """Resolve one process of *profile* to its management endpoint."""
    return Endpoint(
        profile_id=profile.id,
        process_index=process_index,
        host=profile.management_ip,
        port=endpoint_port(profile.profile_number, process_index, base_port),
    )


def profile_endpoints(
    profile: ProfileSettings,
    base_port: int = DEFAULT_BASE_PORT,
) -> Iterator[Endpoint]:
    for i in range(profile.process_count):
        yield endpoint(profile, i, base_port)

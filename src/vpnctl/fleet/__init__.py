"""Fleet layer: address the termination processes and fan operations out.

Public API::

    from vpnctl.fleet import FleetDispatcher, endpoint_port

    port = endpoint_port(3, 1)            # 12069
    dispatcher.kill_by_identity("alice")  # KillResult(disconnected=1, failures=[])
"""

from vpnctl.fleet.addressing import (
    AddressingRangeError,
    Endpoint,
    endpoint,
    endpoint_port,
    profile_endpoints,
)
from vpnctl.fleet.channel import (
    ChannelError,
    ClientSession,
    EndpointTimeout,
    EndpointUnreachable,
    ProcessControlChannel,
)
from vpnctl.fleet.dispatcher import (
    EndpointFailure,
    EndpointResult,
    FleetDispatcher,
    FleetListing,
    KillResult,
    ProfileConnections,
)

__all__ = [
    "AddressingRangeError",
    "ChannelError",
    "ClientSession",
    "Endpoint",
    "EndpointFailure",
    "EndpointResult",
    "EndpointTimeout",
    "EndpointUnreachable",
    "FleetDispatcher",
    "FleetListing",
    "KillResult",
    "ProcessControlChannel",
    "ProfileConnections",
    "endpoint",
    "endpoint_port",
    "profile_endpoints",
]

"""vpnctl: control plane for a fleet of VPN termination processes."""

__version__ = "1.0.0"

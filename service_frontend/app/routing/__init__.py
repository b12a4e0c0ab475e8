"""
Connection routing for the Frontend service.

The dual-protocol router sits in front of the FastAPI application and
decides, for every plain request and WebSocket upgrade, whether the
tunneling sub-server or the ordinary pipeline gets the connection.
"""

from .dual_protocol import DualProtocolRouter
from .tunnel import DisabledTunnel, MountedTunnel, TunnelServer, build_tunnel

__all__ = [
    "DualProtocolRouter",
    "DisabledTunnel",
    "MountedTunnel",
    "TunnelServer",
    "build_tunnel",
]

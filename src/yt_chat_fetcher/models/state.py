"""
Session State
=============

Connection lifecycle states owned by the resilience manager.

Transitions:
    DISCONNECTED      → CONNECTED          (open succeeded)
    DISCONNECTED      → RECONNECT_PENDING  (open failed)
    CONNECTED         → CONNECTED          (batch received)
    CONNECTED         → RECONNECT_PENDING  (end of stream or transport error)
    RECONNECT_PENDING → DISCONNECTED       (wait elapsed)
    any               → TERMINATED         (cancellation)

TERMINATED is absorbing.
"""

from enum import Enum


class SessionState(str, Enum):
    """
    Lifecycle states of the resilience manager.

    The reconnect deadline of RECONNECT_PENDING is held by the manager.
    """

    DISCONNECTED = "DISCONNECTED"
    CONNECTED = "CONNECTED"
    RECONNECT_PENDING = "RECONNECT_PENDING"
    TERMINATED = "TERMINATED"

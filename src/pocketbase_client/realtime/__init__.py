"""
Realtime module for the PocketBase client.

Provides the event-stream parser, the streaming and polling transports and
the subscription registry that multiplexes topics over one session.
"""

from pocketbase_client.realtime.message import SseMessage
from pocketbase_client.realtime.parser import SseParser
from pocketbase_client.realtime.retry import calculate_reconnect_delay, should_reconnect
from pocketbase_client.realtime.service import (
    Listener,
    RealtimeService,
    UnsubscribeFunc,
    build_subscription_key,
)
from pocketbase_client.realtime.transport import (
    BaseSseTransport,
    BufferedDownload,
    ConnectionState,
    PollingSseTransport,
    StreamingSseTransport,
)

__all__ = [
    # Wire format
    "SseMessage",
    "SseParser",
    # Transports
    "BaseSseTransport",
    "BufferedDownload",
    "ConnectionState",
    "PollingSseTransport",
    "StreamingSseTransport",
    "calculate_reconnect_delay",
    "should_reconnect",
    # Registry
    "Listener",
    "RealtimeService",
    "UnsubscribeFunc",
    "build_subscription_key",
]

"""
Channel factories, channels and their lifecycle.

Components:
- RemoteChannel / ChannelFactory: transport-neutral abstractions
- ChannelFactoryCache: exactly-once factory construction per cache key
- ChannelLifecycleManager: per-call channels with close/abort and cancellation
"""

from .base import ChannelFactory, ChannelFactoryBuilder, ChannelState, RemoteChannel
from .cache import ChannelFactoryCache, ChannelFactoryEntry, ChannelFactoryKey
from .lifecycle import ChannelLifecycleManager, Invocation, InvocationOutcome

__all__ = [
    "ChannelFactory",
    "ChannelFactoryBuilder",
    "ChannelFactoryCache",
    "ChannelFactoryEntry",
    "ChannelFactoryKey",
    "ChannelLifecycleManager",
    "ChannelState",
    "Invocation",
    "InvocationOutcome",
    "RemoteChannel",
]

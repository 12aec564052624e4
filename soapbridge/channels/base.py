"""
Channel abstractions.

A ChannelFactory is expensive to build and shared by every call with the
same cache key; a RemoteChannel is cheap, created per call and discarded.
Concrete transports implement the ``_invoke``/``_close``/``_abort`` hooks;
state transitions live here so every transport follows the same machine:

    CREATED -> CALLING -> COMPLETED | FAULTED
    a failed call that leaves the channel usable stays CALLING
    any non-terminal state -> CLOSED | ABORTED (terminal)
"""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

from ..config import TransportConfig
from ..contracts.descriptors import OperationDescriptor
from ..exceptions import TransportError
from ..logger import get_logger

logger = get_logger(__name__)


class ChannelState(Enum):
    """Lifecycle states of a remote channel."""

    CREATED = "created"
    CALLING = "calling"
    COMPLETED = "completed"
    FAULTED = "faulted"
    CLOSED = "closed"
    ABORTED = "aborted"

    @property
    def is_terminal(self) -> bool:
        return self in (ChannelState.CLOSED, ChannelState.ABORTED)


class RemoteChannel(ABC):
    """A single logical connection used for one remote call."""

    def __init__(self, endpoint_url: str):
        self.endpoint_url = endpoint_url
        self._state = ChannelState.CREATED

    @property
    def state(self) -> ChannelState:
        return self._state

    async def invoke(self, operation: OperationDescriptor, arguments: tuple[Any, ...]) -> Any:
        """Call ``operation`` on the remote endpoint with ``arguments``."""
        if self._state.is_terminal:
            raise TransportError(
                f"Channel to {self.endpoint_url} is {self._state.value}",
                details={"endpoint": self.endpoint_url, "state": self._state.value},
            )
        self._state = ChannelState.CALLING
        # A failed call stays CALLING unless the transport marked it faulted.
        result = await self._invoke(operation, arguments)
        if self._state is ChannelState.CALLING:
            self._state = ChannelState.COMPLETED
        return result

    async def close(self) -> None:
        """Orderly shutdown. Raises if the channel cannot close cleanly."""
        if self._state.is_terminal:
            return
        if self._state is ChannelState.FAULTED:
            raise TransportError(
                "Cannot close a faulted channel", details={"endpoint": self.endpoint_url}
            )
        await self._close()
        self._state = ChannelState.CLOSED

    async def abort(self) -> None:
        """Hard-terminate the channel. Never raises."""
        if self._state.is_terminal:
            return
        self._state = ChannelState.ABORTED
        try:
            await self._abort()
        except Exception as e:
            logger.warning("Channel abort failed", endpoint=self.endpoint_url, error=str(e))

    def mark_faulted(self) -> None:
        """Flag the channel as unusable for an orderly close."""
        if not self._state.is_terminal:
            self._state = ChannelState.FAULTED

    @abstractmethod
    async def _invoke(self, operation: OperationDescriptor, arguments: tuple[Any, ...]) -> Any:
        """Perform the remote call."""

    async def _close(self) -> None:
        """Release per-channel resources after a successful call."""

    async def _abort(self) -> None:
        """Release per-channel resources immediately."""


class ChannelFactory(ABC):
    """Long-lived producer of channels for one contract, endpoint and transport."""

    @abstractmethod
    def create_channel(self) -> RemoteChannel:
        """Return a new channel. Channels are never reused across calls."""

    async def close(self) -> None:
        """Release the factory's transport resources."""


ChannelFactoryBuilder = Callable[[type, str, TransportConfig], Awaitable[ChannelFactory]]
"""Async callable building a factory for (contract, endpoint URL, transport)."""

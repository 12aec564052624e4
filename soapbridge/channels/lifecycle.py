"""
Channel lifecycle management.

Every call gets a fresh channel from the cached factory. The channel is
closed in an orderly way after a successful call and aborted on any
failure, on cancellation, or when an orderly close is not possible, so no
channel outlives its call.
"""

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from ..config import TransportConfig
from ..contracts.descriptors import OperationDescriptor
from ..exceptions import TransportError
from ..logger import get_logger
from .base import ChannelState, RemoteChannel
from .cache import ChannelFactoryCache

logger = get_logger(__name__)
tracer = trace.get_tracer(__name__)


class InvocationOutcome(Enum):
    """How a single invocation ended."""

    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class Invocation:
    """Per-call state. Owned by exactly one call and never shared."""

    operation: OperationDescriptor
    arguments: tuple[Any, ...]
    endpoint_url: str
    cancellation: asyncio.Event | None = None
    channel: RemoteChannel | None = None
    outcome: InvocationOutcome = InvocationOutcome.PENDING
    result: Any = None
    error: BaseException | None = None
    started_at: float = field(default_factory=time.time)

    @property
    def duration_ms(self) -> float:
        return round((time.time() - self.started_at) * 1000, 2)


class ChannelLifecycleManager:
    """Runs remote calls on per-call channels drawn from a shared factory cache."""

    def __init__(self, cache: ChannelFactoryCache, enable_tracing: bool = True):
        self.cache = cache
        self.tracer = tracer if enable_tracing else trace.NoOpTracer()

        # Metrics
        self.total_invocations = 0
        self.channels_closed = 0
        self.channels_aborted = 0
        self.cancelled_invocations = 0

    async def invoke(
        self,
        contract: type,
        endpoint_url: str,
        transport: TransportConfig,
        operation: OperationDescriptor,
        arguments: tuple[Any, ...],
        cancellation: asyncio.Event | None = None,
    ) -> Any:
        """Invoke ``operation`` at ``endpoint_url`` on a new channel.

        Raises:
            RemoteFaultError: If the remote service answered with a fault.
            TransportError: On network failure, timeout or cancellation.
        """
        self.total_invocations += 1
        invocation = Invocation(operation, arguments, endpoint_url, cancellation)

        entry = await self.cache.get_or_create(contract, endpoint_url, transport)
        invocation.channel = entry.factory.create_channel()

        with self.tracer.start_as_current_span(
            "soapbridge.invoke",
            attributes={
                "soap.endpoint": endpoint_url,
                "soap.operation": operation.remote_name,
                "soap.transport": transport.kind.value,
            },
            record_exception=False,
            set_status_on_exception=False,
        ) as span:
            try:
                invocation.result = await self._call(invocation)
            except BaseException as e:
                invocation.error = e
                if isinstance(e, asyncio.CancelledError):
                    self._mark_cancelled(invocation)
                elif invocation.outcome is InvocationOutcome.PENDING:
                    invocation.outcome = InvocationOutcome.FAILED
                await self._abort(invocation.channel)
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, str(e)))
                logger.warning(
                    "Remote call failed",
                    endpoint=endpoint_url,
                    operation=operation.remote_name,
                    outcome=invocation.outcome.value,
                    error=str(e),
                    duration_ms=invocation.duration_ms,
                )
                raise

            invocation.outcome = InvocationOutcome.SUCCEEDED
            await self._shutdown(invocation.channel, transport)
            logger.info(
                "Remote call completed",
                endpoint=endpoint_url,
                operation=operation.remote_name,
                duration_ms=invocation.duration_ms,
            )
            return invocation.result

    async def _call(self, invocation: Invocation) -> Any:
        channel = invocation.channel
        cancellation = invocation.cancellation
        if cancellation is None:
            return await channel.invoke(invocation.operation, invocation.arguments)

        if cancellation.is_set():
            self._mark_cancelled(invocation)
            raise self._cancelled_error(invocation)

        call = asyncio.ensure_future(channel.invoke(invocation.operation, invocation.arguments))
        waiter = asyncio.ensure_future(cancellation.wait())
        try:
            done, _ = await asyncio.wait({call, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except BaseException:
            call.cancel()
            raise
        finally:
            waiter.cancel()

        if call in done:
            return call.result()

        # Cancellation won the race: abort first, then reap the abandoned call.
        self._mark_cancelled(invocation)
        await self._abort(channel)
        call.cancel()
        await asyncio.gather(call, return_exceptions=True)
        raise self._cancelled_error(invocation)

    def _mark_cancelled(self, invocation: Invocation) -> None:
        invocation.outcome = InvocationOutcome.CANCELLED
        self.cancelled_invocations += 1

    @staticmethod
    def _cancelled_error(invocation: Invocation) -> TransportError:
        return TransportError(
            f"Call to '{invocation.operation.remote_name}' was cancelled",
            details={
                "endpoint": invocation.endpoint_url,
                "operation": invocation.operation.remote_name,
                "cancelled": True,
            },
        )

    async def _shutdown(self, channel: RemoteChannel, transport: TransportConfig) -> None:
        if channel.state is ChannelState.FAULTED:
            await self._abort(channel)
            return
        try:
            await asyncio.wait_for(channel.close(), timeout=transport.close_timeout)
        except Exception as e:
            logger.warning("Orderly channel close failed, aborting", endpoint=channel.endpoint_url, error=str(e))
            await self._abort(channel)
            return
        self.channels_closed += 1

    async def _abort(self, channel: RemoteChannel) -> None:
        if channel.state.is_terminal:
            return
        await channel.abort()
        self.channels_aborted += 1

    def get_metrics(self) -> dict[str, Any]:
        """Get invocation and cache metrics."""
        return {
            "total_invocations": self.total_invocations,
            "channels_closed": self.channels_closed,
            "channels_aborted": self.channels_aborted,
            "cancelled_invocations": self.cancelled_invocations,
            "cache": self.cache.get_metrics(),
        }

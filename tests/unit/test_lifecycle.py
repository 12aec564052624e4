"""
Tests for channel states and the channel lifecycle manager.
"""

import asyncio

import pytest

import sample_contracts
from fakes import (
    CALCULATOR_URL,
    FakeChannel,
    FakeFactoryBuilder,
    broken_behaviour,
    echo_behaviour,
    fault_behaviour,
    hanging_behaviour,
)
from soapbridge.channels import ChannelFactoryCache, ChannelLifecycleManager, ChannelState
from soapbridge.config import TransportConfig
from soapbridge.exceptions import RemoteFaultError, TransportError

CONTRACT = sample_contracts.ICalculator


@pytest.fixture
def add(calculator):
    (operation,) = calculator.find_overloads("Add")
    return operation


def make_manager(behaviour) -> tuple[ChannelLifecycleManager, FakeFactoryBuilder]:
    builder = FakeFactoryBuilder(behaviour)
    return ChannelLifecycleManager(ChannelFactoryCache(builder)), builder


class TestRemoteChannel:
    """Test the channel state machine."""

    @pytest.mark.asyncio
    async def test_successful_call_then_close(self, add):
        channel = FakeChannel(CALCULATOR_URL, echo_behaviour)
        assert channel.state is ChannelState.CREATED

        await channel.invoke(add, (1, 2))
        assert channel.state is ChannelState.COMPLETED

        await channel.close()
        assert channel.state is ChannelState.CLOSED
        assert channel.closed

    @pytest.mark.asyncio
    async def test_faulted_channel_cannot_close(self, add):
        channel = FakeChannel(CALCULATOR_URL, broken_behaviour)

        with pytest.raises(TransportError):
            await channel.invoke(add, (1, 2))
        assert channel.state is ChannelState.FAULTED

        with pytest.raises(TransportError):
            await channel.close()

        await channel.abort()
        assert channel.state is ChannelState.ABORTED

    @pytest.mark.asyncio
    async def test_failed_call_is_not_completed(self, add):
        channel = FakeChannel(CALCULATOR_URL, fault_behaviour)

        with pytest.raises(RemoteFaultError):
            await channel.invoke(add, (1, 2))

        assert channel.state is ChannelState.CALLING

    @pytest.mark.asyncio
    async def test_terminal_states_are_final(self, add):
        channel = FakeChannel(CALCULATOR_URL, echo_behaviour)
        await channel.abort()

        await channel.close()
        await channel.abort()
        assert channel.state is ChannelState.ABORTED

        with pytest.raises(TransportError):
            await channel.invoke(add, (1, 2))

    @pytest.mark.asyncio
    async def test_abort_never_raises(self, add):
        channel = FakeChannel(CALCULATOR_URL, echo_behaviour)

        async def failing_abort():
            raise OSError("socket already gone")

        channel._abort = failing_abort
        await channel.abort()

        assert channel.state is ChannelState.ABORTED


class TestChannelLifecycleManager:
    """Test per-call channels."""

    @pytest.mark.asyncio
    async def test_success_closes_channel(self, add):
        manager, builder = make_manager(echo_behaviour)

        result = await manager.invoke(CONTRACT, CALCULATOR_URL, TransportConfig(), add, (1, 2))

        assert result == {"operation": "Add", "arguments": [1, 2]}
        (channel,) = builder.channels
        assert channel.state is ChannelState.CLOSED
        assert manager.get_metrics()["channels_closed"] == 1

    @pytest.mark.asyncio
    async def test_fault_aborts_channel(self, add):
        manager, builder = make_manager(fault_behaviour)

        with pytest.raises(RemoteFaultError):
            await manager.invoke(CONTRACT, CALCULATOR_URL, TransportConfig(), add, (1, 0))

        (channel,) = builder.channels
        assert channel.state is ChannelState.ABORTED
        assert channel.aborted

    @pytest.mark.asyncio
    async def test_transport_failure_aborts_channel(self, add):
        manager, builder = make_manager(broken_behaviour)

        with pytest.raises(TransportError):
            await manager.invoke(CONTRACT, CALCULATOR_URL, TransportConfig(), add, (1, 2))

        (channel,) = builder.channels
        assert channel.state is ChannelState.ABORTED

    @pytest.mark.asyncio
    async def test_each_call_gets_a_new_channel(self, add):
        manager, builder = make_manager(echo_behaviour)
        transport = TransportConfig()

        await asyncio.gather(
            *(manager.invoke(CONTRACT, CALCULATOR_URL, transport, add, (i, i)) for i in range(5))
        )

        assert builder.builds == 1
        assert len(builder.channels) == 5
        assert all(channel.state is ChannelState.CLOSED for channel in builder.channels)

    @pytest.mark.asyncio
    async def test_cancellation_aborts_in_flight_call(self, add):
        manager, builder = make_manager(hanging_behaviour)
        cancellation = asyncio.Event()

        task = asyncio.ensure_future(
            manager.invoke(CONTRACT, CALCULATOR_URL, TransportConfig(), add, (1, 2), cancellation)
        )
        while not builder.channels or not builder.channels[0].calls:
            await asyncio.sleep(0)
        cancellation.set()

        with pytest.raises(TransportError) as exc_info:
            await task

        assert exc_info.value.details["cancelled"] is True
        assert builder.channels[0].state is ChannelState.ABORTED
        assert manager.get_metrics()["cancelled_invocations"] == 1

    @pytest.mark.asyncio
    async def test_cancellation_before_call(self, add):
        manager, builder = make_manager(echo_behaviour)
        cancellation = asyncio.Event()
        cancellation.set()

        with pytest.raises(TransportError):
            await manager.invoke(CONTRACT, CALCULATOR_URL, TransportConfig(), add, (1, 2), cancellation)

        (channel,) = builder.channels
        assert channel.calls == []
        assert channel.state is ChannelState.ABORTED

    @pytest.mark.asyncio
    async def test_cancelling_one_call_leaves_others_alone(self, add):
        manager, builder = make_manager(echo_behaviour)
        transport = TransportConfig()
        cancelled = asyncio.Event()
        cancelled.set()

        results = await asyncio.gather(
            manager.invoke(CONTRACT, CALCULATOR_URL, transport, add, (1, 2), cancelled),
            manager.invoke(CONTRACT, CALCULATOR_URL, transport, add, (3, 4), asyncio.Event()),
            return_exceptions=True,
        )

        assert isinstance(results[0], TransportError)
        assert results[1] == {"operation": "Add", "arguments": [3, 4]}
        assert sorted(channel.state.value for channel in builder.channels) == ["aborted", "closed"]

    @pytest.mark.asyncio
    async def test_task_cancellation_aborts_channel(self, add):
        manager, builder = make_manager(hanging_behaviour)

        task = asyncio.ensure_future(
            manager.invoke(CONTRACT, CALCULATOR_URL, TransportConfig(), add, (1, 2))
        )
        while not builder.channels or not builder.channels[0].calls:
            await asyncio.sleep(0)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert builder.channels[0].state is ChannelState.ABORTED

    @pytest.mark.asyncio
    async def test_slow_close_falls_back_to_abort(self, add):
        manager, builder = make_manager(echo_behaviour)

        async def slow_close():
            await asyncio.sleep(1)

        original = builder.__call__

        async def patched_builder(contract, endpoint_url, transport):
            factory = await original(contract, endpoint_url, transport)
            create = factory.create_channel

            def create_channel():
                channel = create()
                channel._close = slow_close
                return channel

            factory.create_channel = create_channel
            return factory

        manager.cache._builder = patched_builder

        result = await manager.invoke(
            CONTRACT, CALCULATOR_URL, TransportConfig(close_timeout=0.01), add, (1, 2)
        )

        assert result["arguments"] == [1, 2]
        (channel,) = builder.channels
        assert channel.state is ChannelState.ABORTED

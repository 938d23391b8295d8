"""
Tests for server-push subscriptions.
"""
import asyncio
import logging

import grpc
import pytest

from hera_client.exceptions import DecodingError, TransportError, ValidationError
from hera_client.models import Event
from hera_client.stream import StreamState, StreamSubscription

from tests.test_helpers import FakeRpcError, FakeStreamCall, wire


async def settle(subscription):
    await asyncio.wait_for(subscription.wait_closed(), timeout=1)


class TestStreamSubscription:
    """Listener delivery and lifecycle"""

    @pytest.mark.asyncio
    async def test_delivers_decoded_items_in_order(self):
        call = FakeStreamCall(items=[1, 2, 3])
        received, ended = [], []

        subscription = StreamSubscription(call, lambda n: n * 10)
        subscription.on("data", received.append).on("end", ended.append)
        subscription.start()
        await settle(subscription)

        assert received == [10, 20, 30]
        assert ended == [None]
        assert subscription.state == StreamState.COMPLETED

    @pytest.mark.asyncio
    async def test_async_listeners_are_awaited(self):
        received = []

        async def listener(value):
            await asyncio.sleep(0)
            received.append(value)

        subscription = StreamSubscription(FakeStreamCall(items=["a", "b"]), lambda v: v)
        subscription.on("data", listener)
        subscription.start()
        await settle(subscription)

        assert received == ["a", "b"]

    @pytest.mark.asyncio
    async def test_open_calls_stub_method(self):
        requests = []
        call = FakeStreamCall(items=[5])

        def method(request):
            requests.append(request)
            return call

        received = []
        subscription = StreamSubscription.open(method, "req", lambda v: v)
        subscription.on("data", received.append)
        await settle(subscription)

        assert requests == ["req"]
        assert received == [5]

    def test_unknown_event(self):
        subscription = StreamSubscription(FakeStreamCall(), lambda v: v)
        with pytest.raises(ValidationError):
            subscription.on("message", print)


class TestStreamCancellation:
    """cancel() and the signals that follow it"""

    @pytest.mark.asyncio
    async def test_cancel_signal_is_suppressed(self):
        """The cancellation status reported after cancel() never reaches the error listener"""
        call = FakeStreamCall(items=[1], hold_open=True)
        received, errors = [], []

        subscription = StreamSubscription(call, lambda v: v)
        subscription.on("data", received.append).on("error", errors.append)
        subscription.start()

        while not received:
            await asyncio.sleep(0)
        subscription.cancel()
        await settle(subscription)

        assert call.cancelled
        assert errors == []
        assert subscription.state == StreamState.CANCELLED
        assert subscription.cancelled

    @pytest.mark.asyncio
    async def test_cancel_via_task_cancellation_is_suppressed(self):
        call = FakeStreamCall(hold_open=True, cancel_error=asyncio.CancelledError())
        errors = []

        subscription = StreamSubscription(call, lambda v: v)
        subscription.on("error", errors.append)
        subscription.start()
        await asyncio.sleep(0)
        subscription.cancel()
        await settle(subscription)

        assert errors == []

    @pytest.mark.asyncio
    async def test_no_data_after_cancel(self):
        call = FakeStreamCall(items=[1, 2, 3])
        received = []
        subscription = StreamSubscription(call, lambda v: v)

        def listener(value):
            received.append(value)
            subscription.cancel()

        subscription.on("data", listener)
        subscription.start()
        await settle(subscription)

        assert received == [1]

    @pytest.mark.asyncio
    async def test_cancel_before_start_reads_nothing(self):
        call = FakeStreamCall(items=[1])
        received = []
        subscription = StreamSubscription(call, lambda v: v)
        subscription.on("data", received.append)
        subscription.cancel()
        subscription.start()
        await settle(subscription)

        assert received == []

    @pytest.mark.asyncio
    async def test_cancel_after_completion_is_noop(self):
        call = FakeStreamCall(items=[])
        subscription = StreamSubscription(call, lambda v: v)
        subscription.start()
        await settle(subscription)

        subscription.cancel()
        assert subscription.state == StreamState.COMPLETED
        assert not call.cancelled


class TestStreamErrors:
    """Errors other than cancellation"""

    @pytest.mark.asyncio
    async def test_transport_error_reaches_listener(self):
        call = FakeStreamCall(items=[1], error=FakeRpcError(grpc.StatusCode.UNAVAILABLE, "node went away"))
        errors, ended = [], []

        subscription = StreamSubscription(call, lambda v: v)
        subscription.on("error", errors.append).on("end", ended.append)
        subscription.start()
        await settle(subscription)

        assert len(errors) == 1
        assert isinstance(errors[0], TransportError)
        assert errors[0].code == grpc.StatusCode.UNAVAILABLE
        assert ended == []
        assert subscription.state == StreamState.ERRORED

    @pytest.mark.asyncio
    async def test_remote_cancel_without_local_cancel_is_suppressed(self):
        call = FakeStreamCall(error=FakeRpcError(grpc.StatusCode.CANCELLED, "cancelled"))
        errors = []

        subscription = StreamSubscription(call, lambda v: v)
        subscription.on("error", errors.append)
        subscription.start()
        await settle(subscription)

        assert errors == []
        assert subscription.state == StreamState.CANCELLED

    @pytest.mark.asyncio
    async def test_decode_failure_cancels_call(self):
        def decode(value):
            raise DecodingError("garbage")

        call = FakeStreamCall(items=[b"\xff"], hold_open=True)
        errors = []
        subscription = StreamSubscription(call, decode)
        subscription.on("error", errors.append)
        subscription.start()
        await settle(subscription)

        assert call.cancelled
        assert len(errors) == 1
        assert isinstance(errors[0], DecodingError)

    @pytest.mark.asyncio
    async def test_model_rejection_becomes_decoding_error(self):
        # Event args must be a JSON list
        call = FakeStreamCall(items=[wire(contractAddress=b"", eventName="e", jsonArgs='{"a": 1}')], hold_open=True)
        errors, received = [], []
        subscription = StreamSubscription(call, Event.from_proto)
        subscription.on("data", received.append).on("error", errors.append)
        subscription.start()
        await settle(subscription)

        assert received == []
        assert len(errors) == 1
        assert isinstance(errors[0], DecodingError)
        assert call.cancelled
        assert subscription.state == StreamState.ERRORED

    @pytest.mark.asyncio
    async def test_failing_data_listener_cancels_call(self):
        def explode(value):
            raise RuntimeError("listener broke")

        call = FakeStreamCall(items=[1, 2], hold_open=True)
        errors, ended = [], []
        subscription = StreamSubscription(call, lambda v: v)
        subscription.on("data", explode).on("error", errors.append).on("end", ended.append)
        subscription.start()
        await settle(subscription)

        assert len(errors) == 1
        assert isinstance(errors[0], RuntimeError)
        assert str(errors[0]) == "listener broke"
        assert call.cancelled
        assert ended == []
        assert subscription.state == StreamState.ERRORED

    @pytest.mark.asyncio
    async def test_unobserved_error_is_logged(self, caplog):
        call = FakeStreamCall(error=FakeRpcError(grpc.StatusCode.INTERNAL, "boom"))
        subscription = StreamSubscription(call, lambda v: v, name="test stream")

        with caplog.at_level(logging.WARNING, logger="hera_client.stream"):
            subscription.start()
            await settle(subscription)

        assert "Unhandled error on test stream subscription" in caplog.text

"""
Server-push subscriptions.

A subscription owns one streaming call. Raw wire items are decoded before they
reach listeners, and the cancellation signal that follows ``cancel()`` is
swallowed instead of being reported as an error.
"""
import asyncio
import inspect
import logging
from enum import Enum
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

import grpc

from ._rate_limited_log import rate_limited_log
from .exceptions import DecodingError, HeraError, TransportError, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

EVENTS = ("data", "error", "end")


class StreamState(str, Enum):
    CREATED = "created"
    LISTENING = "listening"
    CANCELLED = "cancelled"
    ERRORED = "errored"
    COMPLETED = "completed"


TERMINAL_STATES = (StreamState.CANCELLED, StreamState.ERRORED, StreamState.COMPLETED)


class StreamSubscription(Generic[T]):
    """
    One live server-push stream.

    Listeners are registered per event name:

    - ``data``: called with each decoded item, in arrival order
    - ``error``: called once with a TransportError, a DecodingError, or the
      exception a ``data`` listener raised
    - ``end``: called when the node closes the stream

    Listeners may be plain functions or coroutine functions; coroutine listeners
    are awaited before the next item is read.

    Args:
        call: Streaming call object; must support ``async for`` and ``cancel()``
        decode: Function turning one wire item into a domain value
        name: Label used in logs
    """

    def __init__(self, call: Any, decode: Callable[[Any], T], name: str = "stream"):
        self._call = call
        self._decode = decode
        self.name = name
        self.state = StreamState.CREATED
        self._listeners: Dict[str, List[Callable]] = {event: [] for event in EVENTS}
        self._cancel_requested = False
        self._task: Optional[asyncio.Task] = None

    @classmethod
    def open(
        cls,
        method: Callable[[Any], Any],
        request: Any,
        decode: Callable[[Any], T],
        name: Optional[str] = None,
    ) -> "StreamSubscription[T]":
        """
        Start a streaming call and begin reading it on the running event loop.

        Listeners registered right after ``open`` returns see every item, since
        reading only starts once the caller yields to the loop.

        Args:
            method: Streaming stub method, e.g. ``stub.ListBlockStream``
            request: Wire request
            decode: Wire item decoder
            name: Label used in logs

        Returns:
            The started subscription
        """
        label = name or getattr(method, "__name__", "stream")
        subscription = cls(method(request), decode, name=label)
        subscription.start()
        logger.debug(f"Opened {label} subscription")
        return subscription

    @property
    def cancelled(self) -> bool:
        return self._cancel_requested

    def start(self) -> None:
        """Schedule the reader task. Must be called with an event loop running."""
        if self._task is None:
            loop = asyncio.get_running_loop()
            self._task = loop.create_task(self._run(), name=f"hera-{self.name}")

    def on(self, event: str, callback: Callable) -> "StreamSubscription[T]":
        """
        Register a listener.

        Raises:
            ValidationError: For an unknown event name
        """
        if event not in self._listeners:
            raise ValidationError(f"Unknown stream event '{event}', expected one of {', '.join(EVENTS)}")
        self._listeners[event].append(callback)
        return self

    def cancel(self) -> None:
        """
        Ask the node to stop the stream.

        Returns immediately; the cancellation signal that eventually arrives is
        swallowed and no listener is called after this point.
        """
        if self.state in TERMINAL_STATES:
            return
        self._cancel_requested = True
        self.state = StreamState.CANCELLED
        self._call.cancel()
        logger.debug(f"Cancelled {self.name} subscription")

    async def wait_closed(self) -> None:
        """Wait until the reader task has finished."""
        if self._task is not None:
            await self._task

    async def _emit(self, event: str, payload: Any) -> None:
        for callback in list(self._listeners[event]):
            if self._cancel_requested:
                return
            result = callback(payload)
            if inspect.isawaitable(result):
                await result

    async def _fail(self, error: Exception) -> None:
        self.state = StreamState.ERRORED
        if not self._listeners["error"]:
            rate_limited_log(f"Unhandled error on {self.name} subscription: {error}", "warning", 60, logger)
            return
        await self._emit("error", error)

    def _decode_item(self, item: Any) -> T:
        try:
            return self._decode(item)
        except HeraError:
            raise
        except Exception as e:
            raise DecodingError(f"Cannot decode item on {self.name} subscription: {e}") from e

    def _is_cancellation(self, error: Exception) -> bool:
        code_method = getattr(error, "code", None)
        code = code_method() if callable(code_method) else None
        return code == grpc.StatusCode.CANCELLED

    async def _run(self) -> None:
        if self._cancel_requested:
            return
        self.state = StreamState.LISTENING
        try:
            async for item in self._call:
                if self._cancel_requested:
                    return
                value = self._decode_item(item)
                await self._emit("data", value)
        except asyncio.CancelledError:
            if self._cancel_requested:
                logger.debug(f"{self.name} subscription closed after cancel()")
                return
            raise
        except grpc.RpcError as e:
            if self._cancel_requested or self._is_cancellation(e):
                logger.debug(f"Suppressed cancellation signal on {self.name} subscription")
                self.state = StreamState.CANCELLED
                return
            await self._fail(TransportError.from_rpc_error(e))
            return
        except HeraError as e:
            # Undecodable item; stop reading rather than skip it silently
            self._call.cancel()
            await self._fail(e)
            return
        except Exception as e:
            # A data listener failed
            if self._cancel_requested:
                return
            self._call.cancel()
            await self._fail(e)
            return

        if not self._cancel_requested:
            self.state = StreamState.COMPLETED
            logger.debug(f"{self.name} subscription ended by remote")
            await self._emit("end", None)

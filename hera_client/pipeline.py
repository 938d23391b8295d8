"""
Unary request pipeline.

Every simple unary call is three stages run in order by a single runner:

    marshal(input) -> request
    invoke(request) -> response     (the only stage touching the network)
    unmarshal(response) -> result

A stage that raises stops the run; its exception reaches the caller as-is.
"""
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Sequence, Tuple, Union

import grpc

from .exceptions import TransportError

logger = logging.getLogger(__name__)

Stage = Callable[[Any], Union[Any, Awaitable[Any]]]


async def _run_stage(stage: Stage, value: Any) -> Any:
    result = stage(value)
    if inspect.isawaitable(result):
        result = await result
    return result


def waterfall(stages: Sequence[Stage]) -> Callable[[Any], Awaitable[Any]]:
    """
    Compose stages into one coroutine function.

    Each stage receives the previous stage's result. Stages may be plain
    functions or coroutine functions.

    Args:
        stages: Ordered stages

    Returns:
        Coroutine function taking the first stage's input
    """
    stages = tuple(stages)

    async def run(value: Any = None) -> Any:
        result = value
        for stage in stages:
            result = await _run_stage(stage, result)
        return result

    return run


class RequestPipeline:
    """
    marshal -> invoke -> unmarshal composition for one unary operation.

    Instances are cheap; the client builds one per call.
    """

    def __init__(self, marshal: Stage, invoke: Stage, unmarshal: Stage):
        self.marshal = marshal
        self.invoke = invoke
        self.unmarshal = unmarshal

    @property
    def stages(self) -> Tuple[Stage, Stage, Stage]:
        return (self.marshal, self.invoke, self.unmarshal)

    async def __call__(self, value: Any = None) -> Any:
        return await waterfall(self.stages)(value)


def rpc_method(
    method: Callable,
    timeout: Optional[float] = None,
    metadata: Optional[Sequence[Tuple[str, str]]] = None,
) -> Callable[[Any], Awaitable[Any]]:
    """
    Adapt a stub method into an invoke stage.

    The stub method may return the response directly or an awaitable (grpc.aio).
    The timeout is handed to the stub unchanged.

    Args:
        method: Stub method, e.g. ``stub.GetBlock``
        timeout: Deadline in seconds, or None for no deadline
        metadata: Optional call metadata

    Returns:
        Coroutine function mapping a request to a response

    Raises:
        TransportError: When the call fails at the transport level
    """
    name = getattr(method, "__name__", None) or getattr(method, "_method", None) or repr(method)

    async def invoke(request: Any) -> Any:
        kwargs = {"timeout": timeout}
        if metadata:
            kwargs["metadata"] = metadata
        logger.debug(f"Calling {name} (timeout={timeout})")
        try:
            response = method(request, **kwargs)
            if inspect.isawaitable(response):
                response = await response
        except grpc.RpcError as e:
            error = TransportError.from_rpc_error(e)
            logger.debug(f"{name} failed: {error}")
            raise error from e
        return response

    return invoke

"""
Transport around an already-built stub.

Use this when the channel is created outside the client (custom interceptors,
credentials or an in-process server) or to drive the client with a fake stub.
"""
import inspect
import logging
from typing import Any, Optional

from .transport import NodeTransport

logger = logging.getLogger(__name__)


class StubTransport(NodeTransport):
    """
    Transport that hands out a stub it was given.

    Args:
        stub: Object exposing the node's remote procedures
        channel: Optional channel to close together with the transport
    """

    def __init__(self, stub: Any, channel: Optional[Any] = None):
        self.stub = stub
        self.channel = channel
        self.url = None

    def is_available(self) -> bool:
        return self.stub is not None

    def initialize(self, url: str, verify_ssl: bool = True) -> None:
        """Record the node address; the stub is already connected."""
        self.url = url
        logger.debug(f"Initialized stub transport for {url}")

    async def close(self) -> None:
        if self.channel is None:
            return
        result = self.channel.close()
        if inspect.isawaitable(result):
            await result
        logger.debug("Stub transport channel closed")

"""
Transport layer for the node RPC service.

This module provides the abstraction the client talks through: something that
owns a connection and exposes a stub whose methods are the node's remote
procedures. Implementations live in ``grpc_transport`` (real gRPC channels)
and ``stub_transport`` (a stub built elsewhere).
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

logger = logging.getLogger(__name__)

DEFAULT_PORT = 7845


class NodeTransport(ABC):
    """
    Abstract base class for node transports.

    After ``initialize`` the ``stub`` attribute holds an object whose methods
    (``Blockchain``, ``GetBlock``, ``ListBlockStream``, ...) accept a wire
    request. Unary methods return the response or an awaitable of it; streaming
    methods return an asynchronously iterable call with ``cancel()``.
    """

    stub: Any = None
    url: Optional[str] = None

    @abstractmethod
    def is_available(self) -> bool:
        """
        Check if this transport can be used in the current environment.

        Returns:
            True if transport is available, False otherwise
        """
        pass

    @abstractmethod
    def initialize(self, url: str, verify_ssl: bool = True) -> None:
        """
        Connect the transport to a node.

        Args:
            url: Node address, e.g. "localhost:7845" or "https://node.example.com"
            verify_ssl: Whether to verify TLS certificates

        Raises:
            TransportError: If the connection cannot be set up
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close any open connections or resources."""
        pass


def get_transport(url: str, verify_ssl: bool = True) -> NodeTransport:
    """
    Build an initialized gRPC transport for a node.

    Args:
        url: Node address
        verify_ssl: Whether to verify TLS certificates

    Returns:
        Transport connected to ``url``

    Raises:
        ImportError: If the generated protobuf modules are not available
    """
    from .grpc_transport import GrpcTransport

    transport = GrpcTransport()
    transport.initialize(url, verify_ssl=verify_ssl)
    logger.info(f"Using gRPC transport for {url}")
    return transport

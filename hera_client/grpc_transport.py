"""
gRPC transport implementation for the node RPC service.

This module opens a ``grpc.aio`` channel to a node and wraps it in the
generated ``AergoRPCServiceStub``.
"""
import os
import logging
import urllib.parse
from typing import Tuple

import grpc

from . import proto
from ._deps import ensure_proto_available
from .exceptions import TransportError
from .transport import DEFAULT_PORT, NodeTransport

logger = logging.getLogger(__name__)

_LOCAL_HOSTS = ("localhost", "127.0.0.1", "::1")


class GrpcTransport(NodeTransport):
    """
    gRPC-based transport using the generated protocol buffer stubs.
    """

    _combined_ca_cache = {}

    def __init__(self):
        self.channel = None
        self.stub = None
        self.url = None

    def is_available(self) -> bool:
        """
        Check if the generated stubs are importable.

        Returns:
            True if the proto modules are available, False otherwise
        """
        return proto.PROTO_AVAILABLE

    @staticmethod
    def _parse_url(url: str) -> Tuple[urllib.parse.ParseResult, str]:
        """
        Parse a node address into its URL parts and the "host:port" target.

        Bare "host:port" addresses are treated as plain http.
        """
        if "://" not in url:
            url = f"http://{url}"
        parsed = urllib.parse.urlparse(url)
        if not parsed.hostname:
            raise ValueError("missing host")
        port = parsed.port or (443 if parsed.scheme == "https" else DEFAULT_PORT)
        host = f"[{parsed.hostname}]" if ":" in parsed.hostname else parsed.hostname
        return parsed, f"{host}:{port}"

    def _validate_node_url(self, url: str) -> None:
        """
        Refuse plaintext connections to remote nodes unless explicitly allowed.

        Args:
            url: Node address to validate

        Raises:
            ValueError: If URL is invalid or uses plaintext to a non-local host
        """
        try:
            parsed, _ = self._parse_url(url)
            if parsed.scheme not in ("http", "https"):
                raise ValueError(f"unsupported scheme {parsed.scheme}://")
            is_local = parsed.hostname in _LOCAL_HOSTS
            if parsed.scheme != "https" and not is_local:
                if os.environ.get("HERA_INSECURE") != "1":
                    raise ValueError(
                        f"Node URL must use HTTPS for remote hosts (got: {parsed.scheme}://). "
                        "Set HERA_INSECURE=1 to allow plaintext connections."
                    )
        except ValueError as e:
            raise ValueError(f"Invalid node URL '{url}': {e}") from e

    def _load_credentials(self) -> grpc.ChannelCredentials:
        """
        Build TLS credentials, honouring a custom CA from the environment.

        HERA_CA replaces the system roots unless HERA_APPEND_CA=1, in which
        case it is appended to certifi's bundle. With HERA_STRICT_CA=1 a CA
        that cannot be read is an error instead of a warning.
        """
        ca_path = os.environ.get("HERA_CA")
        strict_ca = os.environ.get("HERA_STRICT_CA") == "1"
        append_ca = os.environ.get("HERA_APPEND_CA") == "1"

        if not ca_path:
            return grpc.ssl_channel_credentials()

        try:
            with open(ca_path, "rb") as f:
                ca_data = f.read()
        except OSError as e:
            logger.warning(f"Failed to load custom CA certificate from {ca_path}: {e}")
            if strict_ca:
                raise ValueError(f"Failed to load custom CA certificate from {ca_path}: {e}") from e
            return grpc.ssl_channel_credentials()

        if not append_ca:
            logger.info(f"Using custom CA certificate from {ca_path} (replacing system roots)")
            return grpc.ssl_channel_credentials(root_certificates=ca_data)

        import certifi

        system_ca_path = certifi.where()
        cache_key = f"{system_ca_path}:{ca_path}"
        if cache_key not in GrpcTransport._combined_ca_cache:
            with open(system_ca_path, "rb") as f:
                GrpcTransport._combined_ca_cache[cache_key] = f.read() + b"\n" + ca_data
        logger.info(f"Using custom CA certificate from {ca_path} appended to system roots")
        return grpc.ssl_channel_credentials(root_certificates=GrpcTransport._combined_ca_cache[cache_key])

    def _create_channel(self, url: str, verify_ssl: bool) -> grpc.aio.Channel:
        """
        Create an asyncio gRPC channel.

        Args:
            url: Node address
            verify_ssl: Whether to use a verified TLS channel for https URLs

        Returns:
            gRPC channel
        """
        parsed, target = self._parse_url(url)

        if parsed.scheme == "https" and verify_ssl:
            options = [
                # Keepalive settings
                ('grpc.keepalive_time_ms', 30000),  # 30 seconds
                ('grpc.keepalive_timeout_ms', 10000),  # 10 seconds
                ('grpc.http2.max_pings_without_data', 0),  # Allow pings even without data
                ('grpc.http2.min_time_between_pings_ms', 10000),  # Minimum 10s between pings

                # Blocks with many transactions can be large
                ('grpc.max_send_message_length', 10 * 1024 * 1024),  # 10 MB
                ('grpc.max_receive_message_length', 10 * 1024 * 1024),  # 10 MB
            ]
            return grpc.aio.secure_channel(target, self._load_credentials(), options=options)

        if parsed.hostname not in _LOCAL_HOSTS:
            logger.warning(f"Creating insecure gRPC channel to {target} (not recommended for production)")
        return grpc.aio.insecure_channel(target)

    def initialize(self, url: str, verify_ssl: bool = True) -> None:
        """
        Open a channel to the node and create the service stub.

        Args:
            url: Node address
            verify_ssl: Whether to verify TLS certificates

        Raises:
            TransportError: If channel initialization fails
            ImportError: If the generated protobuf modules are not available
            ValueError: If the URL is invalid
        """
        ensure_proto_available()
        self._validate_node_url(url)
        self.url = url

        try:
            self.channel = self._create_channel(url, verify_ssl)
            self.stub = proto.AergoRPCServiceStub(self.channel)
        except (grpc.RpcError, OSError) as e:
            raise TransportError(f"Failed to initialize gRPC transport: {e}") from e
        logger.debug(f"Initialized gRPC transport for {url}")

    async def close(self) -> None:
        """Close the gRPC channel."""
        if self.channel is None:
            return
        await self.channel.close()
        self.channel = None
        logger.debug("gRPC transport closed")

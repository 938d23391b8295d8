"""
Dependency checks for the generated wire modules.

This standalone module helps break circular import dependencies.
"""
import logging

logger = logging.getLogger(__name__)


def ensure_proto_available():
    """
    Check that the generated protobuf modules can be imported.

    Returns:
        The ``hera_client.proto`` module

    Raises:
        ImportError: With generation instructions if the modules are missing
    """
    from . import proto

    if not proto.PROTO_AVAILABLE:
        raise ImportError(
            "Generated protobuf modules for the node RPC service were not found. "
            "Generate them into hera_client/proto with grpc_tools.protoc "
            "(see hera_client/proto/__init__.py), or pass messages= and a transport "
            "with a ready stub to AergoClient."
        )
    return proto

"""
Protocol buffer definitions for the node RPC service.

The generated modules are not shipped. Generate them from the node's
``blockchain.proto``, ``rpc.proto`` and ``node.proto`` into this directory:

    python -m grpc_tools.protoc -I<proto dir> --python_out=hera_client/proto \
        --grpc_python_out=hera_client/proto blockchain.proto rpc.proto node.proto

This module then re-exports the message classes the client builds and the
``AergoRPCServiceStub``.
"""
try:
    from .blockchain_pb2 import (
        Tx,
        TxBody,
        TxList,
        Query,
        StateQuery,
        FilterInfo,
    )
    from .rpc_pb2 import (
        Empty,
        SingleBytes,
        NodeReq,
        ListParams,
        PeersParams,
        Name,
        AccountAddress,
        KeyParams,
        VoteParams,
    )
    from .rpc_pb2_grpc import AergoRPCServiceStub
    PROTO_AVAILABLE = True
except ImportError:
    PROTO_AVAILABLE = False

__all__ = [
    'Tx',
    'TxBody',
    'TxList',
    'Query',
    'StateQuery',
    'FilterInfo',
    'Empty',
    'SingleBytes',
    'NodeReq',
    'ListParams',
    'PeersParams',
    'Name',
    'AccountAddress',
    'KeyParams',
    'VoteParams',
    'AergoRPCServiceStub',
    'PROTO_AVAILABLE',
]

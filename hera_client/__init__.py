"""
Hera client: asynchronous access to a blockchain node's RPC service.

Note: the generated protobuf modules are not shipped; see
``hera_client/proto/__init__.py`` for how to generate them.
"""
import logging

from .address import Address, decode_address, encode_address
from .client import AergoClient
from .contract import MISSING, FunctionCall, StateQuery
from .exceptions import (
    CommitStatus, DecodingError, HeraError, NotFoundError, TransactionError,
    TransportError, ValidationError, error_message_for_code,
)
from .filter import FilterQuery
from .models import (
    AccountState, Block, BlockHeader, BlockMetadata, BlockPosition,
    BlockchainStatus, ChainInfo, ConsensusInfo, ContractABI, Event, NameInfo,
    Peer, Receipt, ServerInfo, Staking, Tx, TxLookup, Vote,
)
from .stream import StreamState, StreamSubscription
from .stub_transport import StubTransport
from .transport import NodeTransport, get_transport
from .version import __version__

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "AergoClient",
    "Address",
    "decode_address",
    "encode_address",
    "FunctionCall",
    "StateQuery",
    "MISSING",
    "FilterQuery",
    "StreamSubscription",
    "StreamState",
    "NodeTransport",
    "StubTransport",
    "get_transport",
    "HeraError",
    "ValidationError",
    "TransportError",
    "DecodingError",
    "NotFoundError",
    "TransactionError",
    "CommitStatus",
    "error_message_for_code",
    "AccountState",
    "Block",
    "BlockHeader",
    "BlockMetadata",
    "BlockPosition",
    "BlockchainStatus",
    "ChainInfo",
    "ConsensusInfo",
    "ContractABI",
    "Event",
    "NameInfo",
    "Peer",
    "Receipt",
    "ServerInfo",
    "Staking",
    "Tx",
    "TxLookup",
    "Vote",
    "__version__",
]

"""
Client for the node RPC service.

Every unary operation is a marshal -> invoke -> unmarshal pipeline over the
transport's stub. Streaming operations return a started StreamSubscription.
"""
import os
import logging
from typing import Any, Callable, Iterable, List, Mapping, Optional, Union

from ._deps import ensure_proto_available
from .address import Address, AddressLike
from .chain_id import ChainIdentityCache
from .contract import FunctionCall, StateQuery, decode_state_proofs
from .encoding import (
    HASH_LENGTH, bytes_to_amount, decode_hash, decode_tx_hash, encode_hash,
    from_number,
)
from .exceptions import NotFoundError, TransportError, ValidationError
from .filter import FilterQuery, encode_filter
from .models import (
    AccountState, Block, BlockMetadata, BlockPosition, BlockchainStatus,
    ChainInfo, ConsensusInfo, ContractABI, Event, NameInfo, Peer, Receipt,
    ServerInfo, Staking, Tx, TxLookup, Vote, _address, parse_json,
)
from .pipeline import RequestPipeline, Stage, rpc_method
from .stream import StreamSubscription
from .transactions import TransactionSubmitter
from .transport import DEFAULT_PORT, NodeTransport, get_transport

logger = logging.getLogger(__name__)

BlockRef = Union[int, str, bytes]


def _env_timeout() -> Optional[float]:
    value = os.environ.get("HERA_RPC_TIMEOUT")
    if not value:
        return None
    try:
        return float(value)
    except ValueError as e:
        raise ValidationError(f"HERA_RPC_TIMEOUT must be a number of seconds, got {value!r}") from e


def _block_hash(value: Union[str, bytes]) -> bytes:
    raw = decode_hash(value)
    if len(raw) != HASH_LENGTH:
        raise ValidationError(f"Block hash must be {HASH_LENGTH} bytes, got {len(raw)}")
    return raw


def _check_block_ref(value: Any) -> None:
    if value is None or value == "" or isinstance(value, bool):
        raise ValidationError("Missing argument block hash or number")
    if isinstance(value, int) and value < 0:
        raise ValidationError(f"Block height must not be negative, got {value}")


class AergoClient:
    """
    Asynchronous client for a node's RPC service.

    Args:
        transport: Connected NodeTransport. When omitted, a gRPC transport to
            HERA_NODE_URL (default ``localhost:7845``) is opened on first use.
        messages: Namespace of wire message constructors; defaults to the
            generated modules in ``hera_client.proto``
        timeout: Default deadline in seconds for unary calls; falls back to
            HERA_RPC_TIMEOUT, then to no deadline

    Example:
        ```python
        async with AergoClient(get_transport("localhost:7845")) as client:
            status = await client.blockchain()
            block = await client.get_block(status.best_height)
        ```
    """

    def __init__(
        self,
        transport: Optional[NodeTransport] = None,
        messages: Any = None,
        timeout: Optional[float] = None,
    ):
        self.transport = transport
        self.messages = messages if messages is not None else ensure_proto_available()
        self.timeout = timeout if timeout is not None else _env_timeout()
        self._chain_id = ChainIdentityCache(self.blockchain)

    @property
    def stub(self):
        if self.transport is None:
            url = os.environ.get("HERA_NODE_URL", f"localhost:{DEFAULT_PORT}")
            logger.info(f"No transport given, connecting to {url}")
            self.transport = get_transport(url)
        return self.transport.stub

    def set_provider(self, transport: NodeTransport) -> None:
        """
        Point the client at another node.

        The cached chain id hash belongs to the previous node and is dropped.
        """
        self.transport = transport
        self._chain_id.invalidate()
        logger.debug("Transport replaced, chain id hash invalidated")

    def _invoke(self, method_name: str, timeout: Optional[float]) -> Callable:
        method = getattr(self.stub, method_name)
        return rpc_method(method, timeout=timeout if timeout is not None else self.timeout)

    def _pipeline(self, method_name: str, marshal: Stage, unmarshal: Stage, timeout: Optional[float]) -> RequestPipeline:
        # The stub is resolved lazily so a failing marshal never touches the transport
        async def invoke(request):
            return await self._invoke(method_name, timeout)(request)

        return RequestPipeline(marshal, invoke, unmarshal)

    def _single_bytes(self, value: bytes):
        return self.messages.SingleBytes(value=value)

    def _empty(self, _=None):
        return self.messages.Empty()

    async def get_chain_id_hash(self, enc: Optional[str] = None) -> Union[bytes, str]:
        """
        Return the chain id hash, asking the node on first use.

        Args:
            enc: "base58" for the encoded string, None for raw bytes
        """
        return await self._chain_id.get(enc)

    def set_chain_id_hash(self, value: Union[str, bytes]) -> None:
        """Use a known chain id hash instead of asking the node."""
        self._chain_id.set(value)

    async def blockchain(self, timeout: Optional[float] = None) -> BlockchainStatus:
        """Current best block and chain id of the node."""
        def unmarshal(response):
            self._chain_id.fill(getattr(response, "best_chain_id_hash", None))
            return BlockchainStatus.from_proto(response)

        return await self._pipeline("Blockchain", self._empty, unmarshal, timeout)()

    async def get_chain_info(self, timeout: Optional[float] = None) -> ChainInfo:
        return await self._pipeline("GetChainInfo", self._empty, ChainInfo.from_proto, timeout)()

    async def get_node_state(
        self,
        component: Optional[str] = None,
        node_timeout: int = 5,
        timeout: Optional[float] = None,
    ) -> Any:
        """
        Status of the node's internal components.

        Args:
            component: Limit the report to one component
            node_timeout: Seconds the node waits for its components to answer
            timeout: Call deadline
        """
        def marshal(_):
            fields = dict(timeout=from_number(node_timeout))
            if component:
                fields["component"] = component.encode("utf-8")
            return self.messages.NodeReq(**fields)

        def unmarshal(response):
            return parse_json(response.value)

        return await self._pipeline("NodeState", marshal, unmarshal, timeout)()

    async def get_block(self, hash_or_number: BlockRef, timeout: Optional[float] = None) -> Block:
        """
        Fetch a block by hash (base58 or raw bytes) or by height.

        Raises:
            ValidationError: If the reference is missing or the hash is not 32 bytes
        """
        def marshal(value):
            _check_block_ref(value)
            if isinstance(value, int):
                return self._single_bytes(from_number(value))
            return self._single_bytes(_block_hash(value))

        return await self._pipeline("GetBlock", marshal, Block.from_proto, timeout)(hash_or_number)

    async def get_block_headers(
        self,
        hash_or_number: BlockRef,
        size: int = 10,
        offset: int = 0,
        desc: bool = True,
        timeout: Optional[float] = None,
    ) -> List[Block]:
        """
        List consecutive block headers starting at a block.

        Args:
            hash_or_number: Starting block hash or height
            size: Number of headers
            offset: Blocks to skip from the start
            desc: Walk towards genesis when True
            timeout: Call deadline
        """
        def marshal(value):
            _check_block_ref(value)
            if size < 0 or offset < 0:
                raise ValidationError("Block header size and offset must not be negative")
            fields = dict(size=size, offset=offset, asc=not desc)
            if isinstance(value, int):
                fields["height"] = value
            else:
                fields["hash"] = _block_hash(value)
            return self.messages.ListParams(**fields)

        def unmarshal(response):
            return [Block.from_proto(block) for block in response.blocks]

        return await self._pipeline("ListBlockHeaders", marshal, unmarshal, timeout)(hash_or_number)

    async def get_transaction(self, txhash: Union[str, bytes], timeout: Optional[float] = None) -> TxLookup:
        """
        Look up a transaction by hash.

        Transactions already in a block come back with their block position.
        Otherwise the node's transaction pool is asked and only the
        transaction is returned.

        Raises:
            ValidationError: If the hash is missing or malformed
            TransportError: If neither lookup succeeds
        """
        request = self._single_bytes(decode_tx_hash(txhash))
        try:
            result = await self._invoke("GetBlockTX", timeout)(request)
        except TransportError as e:
            logger.debug(f"Transaction not found in a block ({e}), trying the mempool")
            result = await self._invoke("GetTX", timeout)(request)
            return TxLookup(tx=Tx.from_proto(result))

        tx_idx = result.txIdx
        return TxLookup(
            tx=Tx.from_proto(result.tx),
            block=BlockPosition(hash=encode_hash(tx_idx.blockHash), idx=tx_idx.idx),
        )

    async def get_transaction_receipt(self, txhash: Union[str, bytes], timeout: Optional[float] = None) -> Receipt:
        def marshal(value):
            return self._single_bytes(decode_tx_hash(value))

        return await self._pipeline("GetReceipt", marshal, Receipt.from_proto, timeout)(txhash)

    def _address_request(self, value: AddressLike):
        if not value:
            raise ValidationError("Missing account address")
        return self._single_bytes(Address(value).as_bytes())

    async def get_state(self, address: AddressLike, timeout: Optional[float] = None) -> AccountState:
        """Nonce, balance and storage roots of an account."""
        return await self._pipeline("GetState", self._address_request, AccountState.from_proto, timeout)(address)

    async def get_nonce(self, address: AddressLike, timeout: Optional[float] = None) -> int:
        def unmarshal(response):
            return getattr(response, "nonce", 0)

        return await self._pipeline("GetState", self._address_request, unmarshal, timeout)(address)

    async def get_staking(self, address: AddressLike, timeout: Optional[float] = None) -> Staking:
        def marshal(value):
            if not value:
                raise ValidationError("Missing account address")
            return self.messages.AccountAddress(value=Address(value).as_bytes())

        def unmarshal(response):
            return Staking(amount=bytes_to_amount(response.amount), when=response.when)

        return await self._pipeline("GetStaking", marshal, unmarshal, timeout)(address)

    async def get_top_votes(self, count: int, id: str = "voteBP", timeout: Optional[float] = None) -> List[Vote]:
        """
        Vote totals for the leading candidates.

        Args:
            count: Number of candidates
            id: Voting issue, block producers by default
            timeout: Call deadline
        """
        def marshal(_):
            if count < 0:
                raise ValidationError("Vote count must not be negative")
            return self.messages.VoteParams(id=id, count=count)

        def unmarshal(response):
            return [
                Vote(candidate=encode_hash(vote.candidate), amount=bytes_to_amount(vote.amount))
                for vote in response.votes
            ]

        return await self._pipeline("GetVotes", marshal, unmarshal, timeout)()

    async def send_signed_transaction(
        self,
        tx: Union[Tx, Mapping[str, Any]],
        timeout: Optional[float] = None,
    ) -> str:
        """
        Commit a signed transaction.

        Returns:
            The transaction hash, base58 encoded

        Raises:
            ValidationError: If required fields are missing
            TransactionError: If the node rejects the transaction or the call fails
        """
        async def invoke(request):
            return await self._invoke("CommitTX", timeout)(request)

        return await TransactionSubmitter(invoke, self.messages).submit(tx)

    async def query_contract(self, call: FunctionCall, timeout: Optional[float] = None) -> Any:
        """Run a read-only contract function and return its decoded JSON result."""
        def marshal(value):
            return value.to_proto(self.messages)

        def unmarshal(response):
            return parse_json(response.value)

        return await self._pipeline("QueryContract", marshal, unmarshal, timeout)(call)

    async def query_contract_state(self, query: StateQuery, timeout: Optional[float] = None) -> Any:
        """
        Read contract state variables with their Merkle proofs.

        Returns:
            None when the node returns no proofs, the decoded value for a
            single key, or one entry per key (``MISSING`` for absent keys)
            for several keys

        Raises:
            NotFoundError: If a single queried key is proven absent
        """
        def marshal(value):
            return value.to_proto(self.messages)

        def unmarshal(response):
            return decode_state_proofs(response, query).unwrap()

        return await self._pipeline("QueryContractState", marshal, unmarshal, timeout)(query)

    async def get_abi(self, address: AddressLike, timeout: Optional[float] = None) -> ContractABI:
        return await self._pipeline("GetABI", self._address_request, ContractABI.from_proto, timeout)(address)

    async def get_events(
        self,
        filter: Union[FilterQuery, Mapping[str, Any], None] = None,
        timeout: Optional[float] = None,
    ) -> List[Event]:
        """
        Contract events matching a filter.

        Args:
            filter: FilterQuery or a mapping of its fields
            timeout: Call deadline
        """
        def marshal(value):
            return encode_filter(FilterQuery.coerce(value), self.messages)

        def unmarshal(response):
            return [Event.from_proto(event) for event in response.events]

        return await self._pipeline("ListEvents", marshal, unmarshal, timeout)(filter)

    def get_block_stream(self) -> StreamSubscription[Block]:
        """Subscribe to new blocks. Must be called from a running event loop."""
        return StreamSubscription.open(
            self.stub.ListBlockStream, self.messages.Empty(), Block.from_proto, name="block stream"
        )

    def get_block_metadata_stream(self) -> StreamSubscription[BlockMetadata]:
        """Subscribe to metadata of new blocks. Must be called from a running event loop."""
        return StreamSubscription.open(
            self.stub.ListBlockMetadataStream, self.messages.Empty(), BlockMetadata.from_proto,
            name="block metadata stream",
        )

    def get_event_stream(self, filter: Union[FilterQuery, Mapping[str, Any], None] = None) -> StreamSubscription[Event]:
        """
        Subscribe to contract events matching a filter.

        The filter is validated before the stream is opened.
        """
        request = encode_filter(FilterQuery.coerce(filter), self.messages)
        return StreamSubscription.open(self.stub.ListEventStream, request, Event.from_proto, name="event stream")

    async def get_peers(
        self,
        showself: bool = True,
        showhidden: bool = True,
        timeout: Optional[float] = None,
    ) -> List[Peer]:
        def marshal(_):
            return self.messages.PeersParams(noHidden=not showhidden, showSelf=showself)

        def unmarshal(response):
            return [Peer.from_proto(peer) for peer in response.peers]

        return await self._pipeline("GetPeers", marshal, unmarshal, timeout)()

    async def get_name_info(self, name: str, timeout: Optional[float] = None) -> NameInfo:
        """
        Owner and destination of a registered account name.

        Raises:
            NotFoundError: If the name is not registered
        """
        def marshal(value):
            if not value:
                raise ValidationError("Missing account name")
            return self.messages.Name(name=value)

        def unmarshal(response):
            owner = _address(getattr(response, "owner", b""))
            if owner is None:
                raise NotFoundError(f"Account name {name} is not registered")
            return NameInfo(
                name=response.name.name or name,
                owner=owner,
                destination=_address(getattr(response, "destination", b"")),
            )

        return await self._pipeline("GetNameInfo", marshal, unmarshal, timeout)(name)

    async def get_consensus_info(self, timeout: Optional[float] = None) -> ConsensusInfo:
        def unmarshal(response):
            info = getattr(response, "info", "")
            return ConsensusInfo(
                type=response.type,
                info=parse_json(info) if info else {},
                bps=[parse_json(bp) for bp in getattr(response, "bps", [])],
            )

        return await self._pipeline("GetConsensusInfo", self._empty, unmarshal, timeout)()

    async def get_server_info(self, keys: Optional[Iterable[str]] = None, timeout: Optional[float] = None) -> ServerInfo:
        """
        Node configuration and status.

        Args:
            keys: Configuration sections to return; all when omitted
            timeout: Call deadline
        """
        def marshal(_):
            return self.messages.KeyParams(key=list(keys or []))

        def unmarshal(response):
            return ServerInfo(
                config={name: dict(item.props) for name, item in response.config.items()},
                status=dict(response.status),
            )

        return await self._pipeline("GetServerInfo", marshal, unmarshal, timeout)()

    async def close(self) -> None:
        """Close the underlying transport."""
        if self.transport is not None:
            await self.transport.close()

    async def __aenter__(self) -> "AergoClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

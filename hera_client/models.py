"""
Data models for the Hera client.

Each model knows how to build itself from the matching wire message
(``from_proto``). Wire messages are read by attribute name only, so any
object exposing the node schema's field names can be decoded.
"""
import json
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .address import Address
from .encoding import (
    amount_to_bytes, bytes_to_amount, decode_hash, decode_base64,
    decode_text, encode_hash, encode_base64,
)
from .exceptions import DecodingError, ValidationError


def _field(message: Any, name: str, default: Any = None) -> Any:
    """Read a wire field, tolerating schemas that predate it."""
    return getattr(message, name, default)


def _address(value: Optional[bytes]) -> Optional[Address]:
    if not value:
        return None
    return Address(bytes(value))


def parse_json(payload: Union[bytes, str, None]) -> Any:
    """
    Decode a JSON payload returned by the node.

    Raises:
        DecodingError: If the payload is not valid JSON
    """
    text = payload if isinstance(payload, str) else decode_text(payload)
    try:
        return json.loads(text)
    except ValueError as e:
        raise DecodingError(f"Invalid JSON payload from node: {e}") from e


class HeraModel(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True, populate_by_name=True)


class ChainId(HeraModel):
    """Identity of a chain as reported by the node"""
    magic: str = ""
    public: bool = False
    mainnet: bool = False
    consensus: str = ""
    version: int = 0

    @classmethod
    def from_proto(cls, message) -> "ChainId":
        return cls(
            magic=_field(message, "magic", ""),
            public=_field(message, "public", False),
            mainnet=_field(message, "mainnet", False),
            consensus=_field(message, "consensus", ""),
            version=_field(message, "version", 0),
        )


class ChainInfo(HeraModel):
    """Chain parameters"""
    chain_id: Optional[ChainId] = None
    bp_number: int = 0
    max_block_size: int = 0
    max_tokens: int = 0
    staking_minimum: int = 0
    total_staking: int = 0
    gas_price: int = 0
    name_price: int = 0

    @classmethod
    def from_proto(cls, message) -> "ChainInfo":
        chain_id = _field(message, "id")
        return cls(
            chain_id=ChainId.from_proto(chain_id) if chain_id is not None else None,
            bp_number=_field(message, "bpNumber", 0),
            max_block_size=_field(message, "maxblocksize", 0),
            max_tokens=bytes_to_amount(_field(message, "maxtokens")),
            staking_minimum=bytes_to_amount(_field(message, "stakingminimum")),
            total_staking=bytes_to_amount(_field(message, "totalstaking")),
            gas_price=bytes_to_amount(_field(message, "gasprice")),
            name_price=bytes_to_amount(_field(message, "nameprice")),
        )


class BlockchainStatus(HeraModel):
    """Current head of the chain"""
    best_block_hash: str
    best_height: int
    best_chain_id_hash: str
    consensus_info: str = ""
    chain_info: Optional[ChainInfo] = None

    @classmethod
    def from_proto(cls, message) -> "BlockchainStatus":
        chain_info = _field(message, "chain_info")
        return cls(
            best_block_hash=encode_hash(_field(message, "best_block_hash")),
            best_height=_field(message, "best_height", 0),
            best_chain_id_hash=encode_hash(_field(message, "best_chain_id_hash")),
            consensus_info=_field(message, "consensus_info", ""),
            chain_info=ChainInfo.from_proto(chain_info) if chain_info is not None else None,
        )


class Tx(HeraModel):
    """
    A transaction.

    Instances decoded from the node describe committed or pooled transactions.
    Instances produced by the signing side are what ``send_signed_transaction``
    accepts.
    """
    hash: str = ""
    nonce: int = 0
    sender: Optional[Address] = Field(None, alias="from")
    recipient: Optional[Address] = Field(None, alias="to")
    amount: int = 0
    payload: bytes = b""
    gas_limit: int = 0
    gas_price: int = 0
    type: int = 0
    chain_id_hash: str = ""
    sign: str = ""

    @field_validator("sender", "recipient", mode="before")
    @classmethod
    def _coerce_address(cls, value):
        if value is None or value == "" or isinstance(value, Address):
            return value or None
        return Address(value)

    @field_validator("payload", mode="before")
    @classmethod
    def _coerce_payload(cls, value):
        if isinstance(value, str):
            return value.encode("utf-8")
        return value

    @classmethod
    def from_proto(cls, message) -> "Tx":
        body = _field(message, "body")
        return cls(
            hash=encode_hash(_field(message, "hash")),
            nonce=_field(body, "nonce", 0),
            sender=_address(_field(body, "account")),
            recipient=_address(_field(body, "recipient")),
            amount=bytes_to_amount(_field(body, "amount")),
            payload=bytes(_field(body, "payload", b"") or b""),
            gas_limit=_field(body, "gasLimit", 0),
            gas_price=bytes_to_amount(_field(body, "gasPrice")),
            type=_field(body, "type", 0),
            chain_id_hash=encode_hash(_field(body, "chainIdHash")),
            sign=encode_base64(_field(body, "sign")),
        )

    def to_proto(self, messages):
        """
        Build the wire Tx message.

        Args:
            messages: Namespace of wire message constructors

        Raises:
            ValidationError: If a required field is missing
        """
        if not self.sender:
            raise ValidationError("Missing required transaction parameter 'from'")
        if not self.chain_id_hash:
            raise ValidationError("Missing required transaction parameter 'chain_id_hash'")

        body_fields = dict(
            nonce=self.nonce,
            account=self.sender.as_bytes(),
            amount=amount_to_bytes(self.amount),
            payload=bytes(self.payload),
            gasLimit=self.gas_limit,
            gasPrice=amount_to_bytes(self.gas_price),
            type=self.type,
            chainIdHash=decode_hash(self.chain_id_hash),
            sign=decode_base64(self.sign),
        )
        if self.recipient:
            body_fields["recipient"] = self.recipient.as_bytes()

        tx_fields = dict(body=messages.TxBody(**body_fields))
        if self.hash:
            tx_fields["hash"] = decode_hash(self.hash)
        return messages.Tx(**tx_fields)


class BlockPosition(HeraModel):
    hash: str
    idx: int


class TxLookup(HeraModel):
    """A transaction, plus its block position when it has been included in a block"""
    tx: Tx
    block: Optional[BlockPosition] = None


class BlockHeader(HeraModel):
    chain_id: str = ""
    prev_block_hash: str = ""
    block_no: int = 0
    timestamp: int = 0
    blocks_root_hash: str = ""
    txs_root_hash: str = ""
    receipts_root_hash: str = ""
    confirms: int = 0
    pub_key: str = ""
    coinbase_account: Optional[Address] = None
    sign: str = ""

    @classmethod
    def from_proto(cls, message) -> "BlockHeader":
        return cls(
            chain_id=encode_base64(_field(message, "chainID")),
            prev_block_hash=encode_hash(_field(message, "prevBlockHash")),
            block_no=_field(message, "blockNo", 0),
            timestamp=_field(message, "timestamp", 0),
            blocks_root_hash=encode_hash(_field(message, "blocksRootHash")),
            txs_root_hash=encode_hash(_field(message, "txsRootHash")),
            receipts_root_hash=encode_hash(_field(message, "receiptsRootHash")),
            confirms=_field(message, "confirms", 0),
            pub_key=encode_base64(_field(message, "pubKey")),
            coinbase_account=_address(_field(message, "coinbaseAccount")),
            sign=encode_base64(_field(message, "sign")),
        )


class Block(HeraModel):
    hash: str
    header: BlockHeader
    txs: List[Tx] = []

    @classmethod
    def from_proto(cls, message) -> "Block":
        body = _field(message, "body")
        txs = _field(body, "txs", []) if body is not None else []
        return cls(
            hash=encode_hash(_field(message, "hash")),
            header=BlockHeader.from_proto(_field(message, "header")),
            txs=[Tx.from_proto(tx) for tx in txs],
        )


class BlockMetadata(HeraModel):
    hash: str
    header: BlockHeader
    txcount: int = 0
    size: int = 0

    @classmethod
    def from_proto(cls, message) -> "BlockMetadata":
        return cls(
            hash=encode_hash(_field(message, "hash")),
            header=BlockHeader.from_proto(_field(message, "header")),
            txcount=_field(message, "txcount", 0),
            size=_field(message, "size", 0),
        )


class Receipt(HeraModel):
    """Execution receipt of a transaction"""
    contract_address: Optional[Address] = None
    result: str = ""
    status: str = ""
    fee: int = 0
    cumulative_fee: int = 0
    block_no: int = 0
    block_hash: str = ""
    tx_index: int = 0
    tx_hash: str = ""
    gas_used: int = 0

    @classmethod
    def from_proto(cls, message) -> "Receipt":
        return cls(
            contract_address=_address(_field(message, "contractAddress")),
            result=_field(message, "ret", ""),
            status=_field(message, "status", ""),
            fee=bytes_to_amount(_field(message, "feeUsed")),
            cumulative_fee=bytes_to_amount(_field(message, "cumulativeFeeUsed")),
            block_no=_field(message, "blockNo", 0),
            block_hash=encode_hash(_field(message, "blockHash")),
            tx_index=_field(message, "txIndex", 0),
            tx_hash=encode_hash(_field(message, "txHash")),
            gas_used=_field(message, "gasUsed", 0),
        )


class AccountState(HeraModel):
    nonce: int = 0
    balance: int = 0
    code_hash: str = ""
    storage_root: str = ""

    @classmethod
    def from_proto(cls, message) -> "AccountState":
        return cls(
            nonce=_field(message, "nonce", 0),
            balance=bytes_to_amount(_field(message, "balance")),
            code_hash=encode_hash(_field(message, "codeHash")),
            storage_root=encode_hash(_field(message, "storageRoot")),
        )


class Staking(HeraModel):
    amount: int = 0
    when: int = 0


class Vote(HeraModel):
    candidate: str
    amount: int = 0


class Event(HeraModel):
    """A contract event"""
    address: Optional[Address] = None
    event_name: str = ""
    args: List[Any] = []
    event_idx: int = 0
    tx_hash: str = ""
    block_hash: str = ""
    block_no: int = 0
    tx_index: int = 0

    @classmethod
    def from_proto(cls, message) -> "Event":
        json_args = _field(message, "jsonArgs", "")
        return cls(
            address=_address(_field(message, "contractAddress")),
            event_name=_field(message, "eventName", ""),
            args=parse_json(json_args) if json_args else [],
            event_idx=_field(message, "eventIdx", 0),
            tx_hash=encode_hash(_field(message, "txHash")),
            block_hash=encode_hash(_field(message, "blockHash")),
            block_no=_field(message, "blockNo", 0),
            tx_index=_field(message, "txIndex", 0),
        )


class NameInfo(HeraModel):
    name: str
    owner: Optional[Address] = None
    destination: Optional[Address] = None


class Peer(HeraModel):
    address: str = ""
    port: int = 0
    peer_id: str = ""
    best_block_hash: str = ""
    best_block_no: int = 0
    state: int = 0
    hidden: bool = False
    self_peer: bool = False
    version: str = ""

    @classmethod
    def from_proto(cls, message) -> "Peer":
        address = _field(message, "address")
        best_block = _field(message, "bestblock")
        return cls(
            address=_field(address, "address", ""),
            port=_field(address, "port", 0),
            peer_id=encode_hash(_field(address, "peerID")),
            best_block_hash=encode_hash(_field(best_block, "blockHash")),
            best_block_no=_field(best_block, "blockNo", 0),
            state=_field(message, "state", 0),
            hidden=_field(message, "hidden", False),
            self_peer=_field(message, "selfpeer", False),
            version=_field(message, "version", ""),
        )


class ConsensusInfo(HeraModel):
    type: str
    info: Dict[str, Any] = {}
    bps: List[Any] = []


class ServerInfo(HeraModel):
    config: Dict[str, Dict[str, str]] = {}
    status: Dict[str, str] = {}


class AbiFunction(HeraModel):
    name: str
    arguments: List[str] = []
    view: bool = False
    payable: bool = False


class StateVariable(HeraModel):
    name: str
    type: str = ""
    len: int = 0


class ContractABI(HeraModel):
    language: str = ""
    version: str = ""
    functions: List[AbiFunction] = []
    state_variables: List[StateVariable] = []

    @classmethod
    def from_proto(cls, message) -> "ContractABI":
        return cls(
            language=_field(message, "language", ""),
            version=_field(message, "version", ""),
            functions=[
                AbiFunction(
                    name=fn.name,
                    arguments=[arg.name for arg in _field(fn, "arguments", [])],
                    view=_field(fn, "view", False),
                    payable=_field(fn, "payable", False),
                )
                for fn in _field(message, "functions", [])
            ],
            state_variables=[
                StateVariable(name=var.name, type=_field(var, "type", ""), len=_field(var, "len", 0))
                for var in _field(message, "state_variables", [])
            ],
        )

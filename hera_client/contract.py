"""
Contract query inputs and state-proof decoding.
"""
import json
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Union

from .address import Address, AddressLike
from .encoding import decode_hash
from .exceptions import NotFoundError, ValidationError
from .models import parse_json


class _Missing:
    """Marker for a queried state key with no value."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


@dataclass
class FunctionCall:
    """A read-only contract function call"""
    address: AddressLike
    name: str
    args: Sequence[Any] = field(default_factory=list)

    def to_proto(self, messages):
        if not self.address:
            raise ValidationError("Missing contract address for query")
        if not self.name:
            raise ValidationError("Missing function name for query")
        queryinfo = json.dumps({"Name": self.name, "Args": list(self.args)})
        return messages.Query(
            contractAddress=Address(self.address).as_bytes(),
            queryinfo=queryinfo.encode("utf-8"),
        )


@dataclass
class StateQuery:
    """
    Query for one or more contract state variables.

    ``keys`` are storage keys as the node expects them.
    """
    address: AddressLike
    keys: Union[str, Sequence[str]]
    root: Optional[Union[str, bytes]] = None
    compressed: bool = False

    @property
    def key_list(self) -> List[str]:
        if isinstance(self.keys, str):
            return [self.keys]
        return list(self.keys)

    def to_proto(self, messages):
        if not self.address:
            raise ValidationError("Missing contract address for state query")
        if not self.key_list:
            raise ValidationError("State query needs at least one storage key")
        fields = dict(
            contractAddress=Address(self.address).as_bytes(),
            storageKeys=self.key_list,
            compressed=self.compressed,
        )
        if self.root:
            fields["root"] = decode_hash(self.root)
        return messages.StateQuery(**fields)


class StateResult:
    """Outcome of a state query, one subclass per response shape."""

    def unwrap(self) -> Any:
        raise NotImplementedError


@dataclass
class StateEmpty(StateResult):
    """The node returned no proofs."""

    def unwrap(self) -> None:
        return None


@dataclass
class StateSingle(StateResult):
    value: Any

    def unwrap(self) -> Any:
        return self.value


@dataclass
class StateMissing(StateResult):
    """The node proved the single queried key absent."""
    key: str
    address: str

    def unwrap(self) -> Any:
        raise NotFoundError(
            f"queried variable {self.key} does not exist in state at address {self.address}"
        )


@dataclass
class StateMany(StateResult):
    """One value per queried key, ``MISSING`` where the key has no value."""
    values: List[Any]

    def unwrap(self) -> List[Any]:
        return list(self.values)


def _proof_value(proof) -> Any:
    value = bytes(getattr(proof, "value", b"") or b"")
    if not getattr(proof, "inclusion", True) or not value:
        return MISSING
    return parse_json(value)


def decode_state_proofs(response, query: StateQuery) -> StateResult:
    """
    Classify a StateQueryProof response.

    Args:
        response: Wire StateQueryProof
        query: The query that was sent; names the key and address when a
            single key is proven absent

    Returns:
        The matching StateResult variant
    """
    proofs = list(getattr(response, "varProofs", []))
    if not proofs:
        return StateEmpty()
    if len(proofs) == 1:
        proof = proofs[0]
        if not getattr(proof, "inclusion", True):
            keys = query.key_list
            return StateMissing(key=keys[0] if keys else "", address=str(Address(query.address)))
        value = _proof_value(proof)
        return StateSingle(None if value is MISSING else value)
    return StateMany([_proof_value(proof) for proof in proofs])

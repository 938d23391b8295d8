"""
Event filter encoding.

The same wire filter drives both the one-shot ``ListEvents`` call and the live
``ListEventStream`` subscription.
"""
import json
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Sequence, Union

from .address import Address, AddressLike
from .exceptions import ValidationError

ArgFilter = Union[Sequence[Any], Mapping[int, Any]]


@dataclass
class FilterQuery:
    """
    Describes which contract events to match.

    ``args`` constrains event arguments by equality, either positionally
    (``[10, "x"]`` matches argument 0 and 1) or sparsely by index
    (``{1: "x"}`` matches argument 1 only).
    """
    address: Optional[AddressLike] = None
    event_name: Optional[str] = None
    args: Optional[ArgFilter] = None
    blockfrom: int = 0
    blockto: int = 0
    desc: bool = True
    recent_block_cnt: int = 0

    @classmethod
    def coerce(cls, value: Union["FilterQuery", Mapping[str, Any], None]) -> "FilterQuery":
        """Accept a FilterQuery or a mapping of its fields."""
        if value is None:
            return cls()
        if isinstance(value, FilterQuery):
            return value
        if isinstance(value, Mapping):
            try:
                return cls(**value)
            except TypeError as e:
                raise ValidationError(f"Invalid event filter: {e}") from e
        raise ValidationError(f"Expected FilterQuery or mapping, got {type(value).__name__}")


def normalize_args(args: Optional[ArgFilter]) -> Optional[Dict[str, Any]]:
    """
    Turn positional or sparse argument constraints into one index -> value mapping.

    Both ``[10]`` and ``{0: 10}`` give ``{"0": 10}``.

    Raises:
        ValidationError: For negative or non-integer indexes, or an unsupported type
    """
    if args is None:
        return None
    if isinstance(args, Mapping):
        indexed = {}
        for key, value in args.items():
            try:
                index = int(key)
            except (TypeError, ValueError) as e:
                raise ValidationError(f"Event argument index must be an integer, got {key!r}") from e
            if index < 0:
                raise ValidationError(f"Event argument index must not be negative, got {index}")
            indexed[index] = value
    elif isinstance(args, (list, tuple)):
        indexed = dict(enumerate(args))
    else:
        raise ValidationError(f"Event arguments must be a list or a mapping, got {type(args).__name__}")
    return {str(index): indexed[index] for index in sorted(indexed)}


def encode_filter(query: FilterQuery, messages):
    """
    Build the wire FilterInfo message for a query.

    Args:
        query: Event query
        messages: Namespace of wire message constructors

    Returns:
        FilterInfo wire message
    """
    for name in ("blockfrom", "blockto", "recent_block_cnt"):
        value = getattr(query, name)
        if not isinstance(value, int) or isinstance(value, bool):
            raise ValidationError(f"Event filter '{name}' must be an integer, got {type(value).__name__}")
        if value < 0:
            raise ValidationError(f"Event filter '{name}' must not be negative")

    fields = dict(
        blockfrom=query.blockfrom,
        blockto=query.blockto,
        desc=query.desc,
        recentBlockCnt=query.recent_block_cnt,
    )
    if query.address:
        fields["contractAddress"] = Address(query.address).as_bytes()
    if query.event_name:
        fields["eventName"] = query.event_name
    arg_filter = normalize_args(query.args)
    if arg_filter:
        fields["argFilter"] = json.dumps(arg_filter, separators=(",", ":")).encode("utf-8")
    return messages.FilterInfo(**fields)

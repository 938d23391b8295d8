"""
Account addresses.

Addresses are stored and sent as raw bytes, but shown to users as base58-check
encoded strings. Short human-readable account names are stored as their literal
bytes and shown as-is.
"""
from typing import Optional, Union

import base58

from .exceptions import DecodingError, ValidationError

ACCOUNT_NAME_LENGTH = 12
ADDRESS_PREFIX_ACCOUNT = 0x42
ADDRESS_KEY_LENGTH = 33

AddressLike = Union["Address", str, bytes, bytearray]


def decode_address(text: str) -> bytes:
    """
    Decode a base58-check encoded account address into raw bytes.

    Args:
        text: Encoded address

    Returns:
        The 33 byte public key payload

    Raises:
        DecodingError: On bad checksum, wrong version prefix or wrong length
    """
    try:
        decoded = base58.b58decode_check(text)
    except ValueError as e:
        raise DecodingError(f"invalid address encoding ({e})") from e
    if not decoded or decoded[0] != ADDRESS_PREFIX_ACCOUNT:
        prefix = decoded[0] if decoded else None
        raise DecodingError(f"invalid address prefix ({prefix})")
    if len(decoded) != ADDRESS_KEY_LENGTH + 1:
        raise DecodingError(f"invalid address length ({len(decoded) - 1})")
    return decoded[1:]


def encode_address(value: Optional[bytes]) -> str:
    """Encode raw address bytes; empty input gives the empty string (no address)."""
    if not value:
        return ""
    return base58.b58encode_check(bytes([ADDRESS_PREFIX_ACCOUNT]) + bytes(value)).decode("ascii")


class Address:
    """
    Wrapper around an account identifier.

    The text form is computed on first use and kept in ``_encoded``.
    """

    __slots__ = ("value", "is_name", "_encoded")

    def __init__(self, address: AddressLike):
        self._encoded: Optional[str] = None
        if isinstance(address, Address):
            self.value = bytes(address.value)
        elif isinstance(address, str):
            if len(address) <= ACCOUNT_NAME_LENGTH:
                self.value = address.encode("utf-8")
            else:
                self.value = decode_address(address)
            self._encoded = address
        elif isinstance(address, (bytes, bytearray, memoryview)):
            self.value = bytes(address)
        else:
            raise ValidationError(
                f"Instantiate Address with raw bytes or a base58-check encoded string, not {address!r}"
            )

        # Padded names still count as names
        self.is_name = False
        stripped = self.value.rstrip(b"\x00")
        if len(stripped) <= ACCOUNT_NAME_LENGTH:
            self.is_name = True
            self.value = stripped

    def as_bytes(self) -> bytes:
        return self.value

    def __str__(self) -> str:
        if self._encoded is not None:
            return self._encoded
        if self.is_name:
            self._encoded = self.value.decode("utf-8", errors="replace")
        else:
            self._encoded = encode_address(self.value)
        return self._encoded

    def __repr__(self) -> str:
        return f"Address('{self}')"

    def __eq__(self, other) -> bool:
        if isinstance(other, Address):
            return self.value == other.value
        if isinstance(other, (str, bytes, bytearray)):
            try:
                return self.value == Address(other).value
            except DecodingError:
                return False
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.value)

    def __bool__(self) -> bool:
        return bool(self.value)

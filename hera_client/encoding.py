"""
Encoding helpers shared by the marshal and unmarshal stages.
"""
import base64
import binascii
from typing import Optional, Union

import base58

from .exceptions import DecodingError, ValidationError

HASH_LENGTH = 32


def encode_hash(value: Optional[bytes]) -> str:
    """Encode a block, transaction or chain id hash as base58 text."""
    if not value:
        return ""
    return base58.b58encode(bytes(value)).decode("ascii")


def decode_hash(value: Union[str, bytes]) -> bytes:
    """
    Decode a base58 hash into raw bytes.

    Raw bytes are passed through untouched.

    Raises:
        ValidationError: If the text is not valid base58
    """
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    try:
        return base58.b58decode(value)
    except ValueError as e:
        raise ValidationError(f"Invalid base58 hash '{value}': {e}") from e


def decode_tx_hash(value: Union[str, bytes]) -> bytes:
    """
    Decode a transaction hash and check its length.

    Raises:
        ValidationError: If the hash is missing or not 32 bytes long
    """
    if not value:
        raise ValidationError("Missing argument transaction hash")
    raw = decode_hash(value)
    if len(raw) != HASH_LENGTH:
        raise ValidationError(f"Invalid transaction hash length {len(raw)}, expected {HASH_LENGTH} bytes")
    return raw


def from_number(value: int, length: int = 8) -> bytes:
    """Encode an unsigned integer as little-endian bytes (block heights, node timeouts)."""
    if value < 0:
        raise ValidationError(f"Expected an unsigned number, got {value}")
    return int(value).to_bytes(length, "little")


def amount_to_bytes(value: Union[int, str, None]) -> bytes:
    """Encode an amount in aer as big-endian bytes; zero encodes as empty bytes."""
    amount = int(value or 0)
    if amount < 0:
        raise ValidationError(f"Amount must not be negative, got {amount}")
    if amount == 0:
        return b""
    return amount.to_bytes((amount.bit_length() + 7) // 8, "big")


def bytes_to_amount(value: Optional[bytes]) -> int:
    """Decode big-endian amount bytes into an integer number of aer."""
    return int.from_bytes(bytes(value or b""), "big")


def encode_base64(value: Optional[bytes]) -> str:
    """Signatures, public keys and chain ids travel as raw bytes and are shown as base64."""
    if not value:
        return ""
    return base64.b64encode(bytes(value)).decode("ascii")


def decode_base64(value: Union[str, bytes, None]) -> bytes:
    if not value:
        return b""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValidationError(f"Invalid base64 value: {e}") from e


def decode_text(value: Optional[bytes]) -> str:
    """Decode a UTF-8 byte payload from the node."""
    try:
        return bytes(value or b"").decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodingError(f"Payload is not valid UTF-8: {e}") from e

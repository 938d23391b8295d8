"""
Per-client cache of the chain identity hash.

Signed transactions embed the chain id hash so they cannot be replayed on
another network. The hash is fetched from the node on first use and dropped
whenever the client is pointed at a different node.
"""
import logging
from typing import Awaitable, Callable, Optional, Union

from .encoding import HASH_LENGTH, decode_hash, encode_hash
from .exceptions import DecodingError, ValidationError

logger = logging.getLogger(__name__)


class ChainIdentityCache:
    """
    Holds the chain id hash for one client.

    Args:
        refresh: Coroutine function that queries the node's blockchain status.
            Its unmarshal stage is expected to call ``fill`` on this cache.
    """

    def __init__(self, refresh: Callable[[], Awaitable[object]]):
        self._refresh = refresh
        self._hash: Optional[bytes] = None

    @property
    def is_set(self) -> bool:
        return self._hash is not None

    async def get(self, enc: Optional[str] = None) -> Union[bytes, str]:
        """
        Return the chain id hash, querying the node if it is not known yet.

        Args:
            enc: Pass "base58" to get the encoded string instead of raw bytes

        Raises:
            DecodingError: If the node's status response carried no chain id hash
        """
        if self._hash is None:
            logger.debug("Chain id hash unknown, querying blockchain status")
            await self._refresh()
        if self._hash is None:
            raise DecodingError("Node did not report a chain id hash")
        if enc == "base58":
            return encode_hash(self._hash)
        return self._hash

    def set(self, value: Union[str, bytes]) -> None:
        """
        Use a known chain id hash (base58 string or raw bytes), skipping the node query.

        Raises:
            ValidationError: If the value does not decode to a 32 byte hash
        """
        raw = decode_hash(value) if value else b""
        if len(raw) != HASH_LENGTH:
            raise ValidationError(f"Chain id hash must be {HASH_LENGTH} bytes, got {len(raw)}")
        self._hash = raw

    def fill(self, value: Optional[bytes]) -> None:
        """Store a hash learned from a status response unless one is already set."""
        if self._hash is None and value:
            self._hash = bytes(value)
            logger.debug("Chain id hash cached from blockchain status")

    def invalidate(self) -> None:
        """Forget the cached hash; the next ``get`` re-queries the node."""
        self._hash = None

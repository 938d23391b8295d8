"""
Submission of signed transactions.
"""
import logging
from typing import Any, Awaitable, Callable, Mapping, Union

import pydantic

from .encoding import encode_hash
from .exceptions import (
    CommitStatus, DecodingError, TransactionError, TransportError,
    ValidationError, error_message_for_code,
)
from .models import Tx

logger = logging.getLogger(__name__)


class TransactionSubmitter:
    """
    Commits one signed transaction at a time.

    Transport failures and node rejections both surface as TransactionError.

    Args:
        invoke: Invoke stage for the node's CommitTX procedure
        messages: Namespace of wire message constructors
    """

    def __init__(self, invoke: Callable[[Any], Awaitable[Any]], messages: Any):
        self._invoke = invoke
        self._messages = messages

    def marshal(self, tx: Union[Tx, Mapping[str, Any]]):
        """Wrap the transaction in a one-element TxList."""
        if not isinstance(tx, Tx):
            try:
                tx = Tx.model_validate(tx)
            except pydantic.ValidationError as e:
                raise ValidationError(f"Invalid transaction: {e}") from e
        return self._messages.TxList(txs=[tx.to_proto(self._messages)])

    def unmarshal(self, response) -> str:
        results = list(getattr(response, "results", []))
        if not results:
            raise DecodingError("Node returned an empty commit result list")
        result = results[0]
        code = getattr(result, "error", CommitStatus.TX_OK)
        if code:
            detail = getattr(result, "detail", "")
            message = f"{error_message_for_code(code)}: {detail}"
            logger.info(f"Transaction rejected by node: {message}")
            raise TransactionError(message, code=int(code), detail=detail)
        tx_hash = encode_hash(getattr(result, "hash", b""))
        logger.debug(f"Transaction {tx_hash} accepted")
        return tx_hash

    async def submit(self, tx: Union[Tx, Mapping[str, Any]]) -> str:
        """
        Send a signed transaction to the node.

        Args:
            tx: Signed transaction

        Returns:
            The transaction hash, base58 encoded

        Raises:
            ValidationError: If the transaction is missing required fields
            TransactionError: If the node rejects it or the call fails
        """
        request = self.marshal(tx)
        try:
            response = await self._invoke(request)
        except TransportError as e:
            raise TransactionError(str(e), detail=e.details) from e
        return self.unmarshal(response)

"""
Tests for signed transaction submission.
"""
import base58
import grpc
import pytest

from hera_client.address import encode_address
from hera_client.exceptions import (
    CommitStatus, DecodingError, HeraError, TransactionError, ValidationError,
    error_message_for_code,
)
from hera_client.models import Tx

from tests.test_helpers import FakeRpcError, wire

SENDER = encode_address(bytes([0x03]) + bytes(range(32)))
TX_HASH = bytes(range(32))
CHAIN_ID = base58.b58encode(b"\x02" * 32).decode()


def signed_tx(**overrides):
    fields = {
        "from": SENDER,
        "to": "aergo.system",
        "nonce": 4,
        "amount": 1000,
        "payload": "{}",
        "chain_id_hash": CHAIN_ID,
        "sign": "c2lnbmF0dXJl",
    }
    fields.update(overrides)
    return fields


def commit_result(error=0, detail="", tx_hash=TX_HASH):
    return wire(results=[wire(hash=tx_hash, error=error, detail=detail)])


class TestCommitStatus:
    def test_known_code(self):
        assert error_message_for_code(CommitStatus.TX_INVALID_SIGN) == "TX_INVALID_SIGN"
        assert error_message_for_code(9) == "TX_INTERNAL_ERROR"

    def test_unknown_code(self):
        assert error_message_for_code(8) == "UNDEFINED_ERROR"
        assert error_message_for_code(42) == "UNDEFINED_ERROR"


class TestSendSignedTransaction:
    """AergoClient.send_signed_transaction"""

    @pytest.mark.asyncio
    async def test_accepted(self, make_client, messages):
        client, stub = make_client(CommitTX=commit_result())

        tx_hash = await client.send_signed_transaction(signed_tx())

        assert tx_hash == base58.b58encode(TX_HASH).decode()
        (_, request, _), = stub.called("CommitTX")
        assert isinstance(request, messages.TxList)
        (tx,) = request.txs
        assert tx.body.nonce == 4
        assert tx.body.amount == (1000).to_bytes(2, "big")
        assert tx.body.recipient == b"aergo.system"
        assert tx.body.payload == b"{}"
        assert tx.body.sign == b"signature"

    @pytest.mark.asyncio
    async def test_accepts_model(self, make_client):
        client, _ = make_client(CommitTX=commit_result())
        tx = Tx.model_validate(signed_tx())
        assert await client.send_signed_transaction(tx) == base58.b58encode(TX_HASH).decode()

    @pytest.mark.asyncio
    async def test_rejection_names_code_and_detail(self, make_client):
        """A business rejection carries both the status name and the node's detail"""
        client, _ = make_client(CommitTX=commit_result(error=CommitStatus.TX_INTERNAL_ERROR, detail="out of gas"))

        with pytest.raises(TransactionError) as excinfo:
            await client.send_signed_transaction(signed_tx())

        message = str(excinfo.value)
        assert "TX_INTERNAL_ERROR" in message
        assert "out of gas" in message
        assert excinfo.value.code == 9
        assert excinfo.value.detail == "out of gas"

    @pytest.mark.asyncio
    async def test_unknown_rejection_code(self, make_client):
        client, _ = make_client(CommitTX=commit_result(error=77, detail="odd"))

        with pytest.raises(TransactionError, match="UNDEFINED_ERROR: odd"):
            await client.send_signed_transaction(signed_tx())

    @pytest.mark.asyncio
    async def test_transport_failure_is_transaction_error(self, make_client):
        client, _ = make_client(CommitTX=FakeRpcError(grpc.StatusCode.UNAVAILABLE, "connection refused"))

        with pytest.raises(TransactionError) as excinfo:
            await client.send_signed_transaction(signed_tx())
        assert excinfo.value.detail == "connection refused"

    @pytest.mark.asyncio
    async def test_empty_result_list(self, make_client):
        client, _ = make_client(CommitTX=wire(results=[]))

        with pytest.raises(DecodingError):
            await client.send_signed_transaction(signed_tx())

    @pytest.mark.asyncio
    async def test_missing_sender_never_sent(self, make_client):
        client, stub = make_client(CommitTX=commit_result())
        tx = signed_tx()
        del tx["from"]

        with pytest.raises(ValidationError):
            await client.send_signed_transaction(tx)
        assert stub.calls == []

    @pytest.mark.asyncio
    async def test_malformed_field_never_sent(self, make_client):
        client, stub = make_client(CommitTX=commit_result())

        with pytest.raises(ValidationError) as excinfo:
            await client.send_signed_transaction(signed_tx(nonce="abc"))
        assert isinstance(excinfo.value, HeraError)
        assert "nonce" in str(excinfo.value)
        assert stub.calls == []

    @pytest.mark.asyncio
    async def test_missing_chain_id_never_sent(self, make_client):
        client, stub = make_client(CommitTX=commit_result())

        with pytest.raises(ValidationError):
            await client.send_signed_transaction(signed_tx(chain_id_hash=""))
        assert stub.calls == []

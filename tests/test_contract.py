"""
Tests for contract calls and state queries.
"""
import json

import pytest

from hera_client.address import encode_address
from hera_client.contract import (
    MISSING, FunctionCall, StateEmpty, StateMany, StateMissing, StateQuery,
    StateSingle, decode_state_proofs,
)
from hera_client.exceptions import DecodingError, NotFoundError, ValidationError

from tests.test_helpers import wire

CONTRACT = encode_address(bytes([0x03]) + bytes(range(32)))


def proofs(*entries):
    return wire(varProofs=[wire(value=value, inclusion=inclusion) for value, inclusion in entries])


class TestDecodeStateProofs:
    """Response shapes of a state query"""

    def setup_method(self):
        self.query = StateQuery(CONTRACT, "_sv_counter")

    def test_no_proofs(self):
        result = decode_state_proofs(proofs(), self.query)
        assert isinstance(result, StateEmpty)
        assert result.unwrap() is None

    def test_single_value(self):
        result = decode_state_proofs(proofs((b"12", True)), self.query)
        assert result == StateSingle(12)
        assert result.unwrap() == 12

    def test_single_absent(self):
        """A key proven absent is an error naming the key and contract"""
        result = decode_state_proofs(proofs((b"", False)), self.query)
        assert isinstance(result, StateMissing)
        with pytest.raises(NotFoundError) as excinfo:
            result.unwrap()
        assert "_sv_counter" in str(excinfo.value)
        assert CONTRACT in str(excinfo.value)

    def test_many_keeps_positions(self):
        query = StateQuery(CONTRACT, ["_sv_a", "_sv_b", "_sv_c"])
        result = decode_state_proofs(proofs((b'"x"', True), (b"", False), (b"[1,2]", True)), query)
        assert isinstance(result, StateMany)
        assert result.unwrap() == ["x", MISSING, [1, 2]]

    def test_invalid_json(self):
        with pytest.raises(DecodingError):
            decode_state_proofs(proofs((b"{not json", True)), self.query)

    def test_missing_marker_is_falsy_singleton(self):
        assert not MISSING
        assert type(MISSING)() is MISSING
        assert repr(MISSING) == "MISSING"


class TestContractRequests:
    """Building wire requests"""

    def test_function_call(self, messages):
        request = FunctionCall(CONTRACT, "get", ["key", 1]).to_proto(messages)
        assert isinstance(request, messages.Query)
        assert json.loads(request.queryinfo) == {"Name": "get", "Args": ["key", 1]}

    def test_function_call_needs_name(self, messages):
        with pytest.raises(ValidationError):
            FunctionCall(CONTRACT, "").to_proto(messages)

    def test_state_query_single_key(self, messages):
        request = StateQuery(CONTRACT, "_sv_counter", compressed=True).to_proto(messages)
        assert request.storageKeys == ["_sv_counter"]
        assert request.compressed is True
        assert not hasattr(request, "root")

    def test_state_query_needs_keys(self, messages):
        with pytest.raises(ValidationError):
            StateQuery(CONTRACT, []).to_proto(messages)


class TestClientContract:
    """Contract operations through AergoClient"""

    @pytest.mark.asyncio
    async def test_query_contract(self, make_client):
        client, stub = make_client(QueryContract=wire(value=b'{"balance": 5}'))
        assert await client.query_contract(FunctionCall(CONTRACT, "info")) == {"balance": 5}

    @pytest.mark.asyncio
    async def test_query_contract_state_single(self, make_client):
        client, _ = make_client(QueryContractState=proofs((b"12", True)))
        assert await client.query_contract_state(StateQuery(CONTRACT, "_sv_counter")) == 12

    @pytest.mark.asyncio
    async def test_query_contract_state_absent(self, make_client):
        client, _ = make_client(QueryContractState=proofs((b"", False)))
        with pytest.raises(NotFoundError, match="_sv_counter"):
            await client.query_contract_state(StateQuery(CONTRACT, "_sv_counter"))

    @pytest.mark.asyncio
    async def test_query_contract_state_empty(self, make_client):
        client, _ = make_client(QueryContractState=proofs())
        assert await client.query_contract_state(StateQuery(CONTRACT, "_sv_counter")) is None

    @pytest.mark.asyncio
    async def test_query_contract_state_two_keys(self, make_client):
        client, _ = make_client(QueryContractState=proofs((b"1", True), (b"2", True)))
        assert await client.query_contract_state(StateQuery(CONTRACT, ["_sv_a", "_sv_b"])) == [1, 2]

    @pytest.mark.asyncio
    async def test_get_abi(self, make_client):
        abi = wire(
            language="lua",
            version="0.2",
            functions=[wire(name="inc", arguments=[wire(name="n")], view=False, payable=True)],
            state_variables=[wire(name="counter", type="value", len=0)],
        )
        client, _ = make_client(GetABI=abi)

        result = await client.get_abi(CONTRACT)
        assert result.language == "lua"
        assert result.functions[0].arguments == ["n"]
        assert result.functions[0].payable
        assert result.state_variables[0].name == "counter"

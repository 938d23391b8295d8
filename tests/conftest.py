"""
Pytest fixtures for the Hera client tests.
"""
import pytest

from hera_client import AergoClient, StubTransport
from hera_client._rate_limited_log import reset_rate_limited_log

from tests.test_helpers import FakeStub, fake_messages


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch):
    """Keep HERA_* settings from the developer's shell out of the tests."""
    for name in ("HERA_RPC_TIMEOUT", "HERA_NODE_URL", "HERA_INSECURE", "HERA_CA", "HERA_APPEND_CA", "HERA_STRICT_CA"):
        monkeypatch.delenv(name, raising=False)
    reset_rate_limited_log()


@pytest.fixture
def messages():
    return fake_messages()


@pytest.fixture
def make_client(messages):
    """Build a client around a FakeStub answering with the given responses."""

    def _make(timeout=None, awaitable=False, **responses):
        stub = FakeStub(awaitable=awaitable, **responses)
        client = AergoClient(StubTransport(stub), messages=messages, timeout=timeout)
        return client, stub

    return _make

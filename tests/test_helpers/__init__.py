"""
Shared fakes for the Hera client tests.
"""
from .fakes import (
    FakeMessage, FakeRpcError, FakeStreamCall, FakeStub, fake_messages,
    make_block, make_tx, wire,
)

__all__ = [
    "FakeMessage",
    "FakeRpcError",
    "FakeStreamCall",
    "FakeStub",
    "fake_messages",
    "make_block",
    "make_tx",
    "wire",
]

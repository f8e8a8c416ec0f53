"""Shared fixtures for the flo test suite.

Provides a controllable monotonic clock, in-memory credential storage and a
client factory whose facades run against AsyncMock collaborators instead of
the network.
"""

from unittest.mock import AsyncMock

import pytest

from flo.core.client import FloClient
from flo.core.config import AppConfig, CacheConfig
from flo.core.credentials import CredentialStore, MemoryKeyValueStore
from flo.domains.endpoints import ResourceOps


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_ops(items=None) -> ResourceOps:
    """ResourceOps whose five calls are AsyncMocks; ``list`` returns ``items``."""
    return ResourceOps(
        list=AsyncMock(return_value=list(items or [])),
        get_by_id=AsyncMock(),
        create=AsyncMock(),
        update=AsyncMock(),
        delete=AsyncMock(return_value=None),
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def kv():
    return MemoryKeyValueStore()


@pytest.fixture
def credentials(kv):
    return CredentialStore(kv)


@pytest.fixture
def client(clock, kv):
    """FloClient with a fake clock, 300 s / 900 s TTL tiers and no HTTP session."""
    config = AppConfig(cache=CacheConfig(short_ttl=300, long_ttl=900))
    return FloClient(config, kv, clock=clock)

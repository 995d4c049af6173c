"""Pytest configuration and shared fixtures."""
import pytest

import recordstate.client as client_module
from recordstate import Client, MemoryAdapter, set_current_client


@pytest.fixture(autouse=True)
def reset_current_client():
    """Restore the process client after each test."""
    original_client = client_module._current_client

    yield

    client_module._current_client = original_client


@pytest.fixture
def adapter():
    """Provide an empty in-memory adapter."""
    return MemoryAdapter()


@pytest.fixture
def client(adapter):
    """Provide a client installed as the process client."""
    client = Client(adapter=adapter)
    set_current_client(client)
    return client

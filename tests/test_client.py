"""Tests for Client configuration and client resolution."""
import logging

import pytest

from recordstate import (
    Client,
    ClientNotConfiguredError,
    MemoryAdapter,
    Record,
    attr,
    clear_current_client,
    client_context,
    get_current_client,
    resolve_client,
    set_current_client,
)
from recordstate.client import type_name


class Invoice(Record):
    number = attr('string')


class TestClientConfiguration:
    """Per-type options keyed by fully-qualified type name."""

    def test_type_name(self):
        assert type_name(Invoice) == f"{Invoice.__module__}.Invoice"
        assert type_name('app.models.Invoice') == 'app.models.Invoice'

    def test_configure_by_type_or_name(self):
        client = Client()

        client.configure_model(Invoice, primary_key='number')

        assert client.model_config(type_name(Invoice)) == {'primary_key': 'number'}
        assert client.primary_key_for(Invoice) == 'number'

    def test_unconfigured_type_uses_default_key(self):
        assert Client().primary_key_for(Invoice) == 'id'

    def test_overwrite_is_logged(self, caplog):
        client = Client()
        client.configure_model(Invoice, primary_key='number')

        with caplog.at_level(logging.WARNING, logger='recordstate.client'):
            client.configure_model(Invoice, primary_key='id')

        assert "Overwriting primary_key" in caplog.text
        assert client.primary_key_for(Invoice) == 'id'

    def test_same_value_is_not_logged(self, caplog):
        client = Client()
        client.configure_model(Invoice, primary_key='number')

        with caplog.at_level(logging.WARNING, logger='recordstate.client'):
            client.configure_model(Invoice, primary_key='number')

        assert not [record for record in caplog.records if record.levelno >= logging.WARNING]

    def test_serializer_comes_from_adapter(self):
        adapter = MemoryAdapter()

        assert Client(adapter=adapter).serializer is adapter.serializer
        assert Client().serializer is None

    def test_require_adapter(self):
        with pytest.raises(ClientNotConfiguredError):
            Client().require_adapter()

        with pytest.raises(ClientNotConfiguredError):
            Client().require_serializer()


class TestClientLifecycle:
    """Process client, context client and bound client."""

    def test_set_and_clear(self):
        client = Client()

        set_current_client(client)
        assert get_current_client() is client

        clear_current_client()
        assert get_current_client() is None

    def test_context_client_is_scoped(self, client):
        scoped = Client()

        with client_context(scoped) as active:
            assert active is scoped
            assert get_current_client() is scoped

        assert get_current_client() is client

    def test_context_restored_on_error(self, client):
        with pytest.raises(KeyError):
            with client_context(Client()):
                raise KeyError('boom')

        assert get_current_client() is client

    def test_resolution_order(self, client):
        bound = Client()
        scoped = Client()

        class Receipt(Record, client=bound):
            pass

        assert resolve_client(Invoice) is client
        assert resolve_client(Receipt) is bound
        with client_context(scoped):
            assert resolve_client(Invoice) is scoped
            assert resolve_client(Receipt) is bound

    def test_bound_client_inherited(self):
        bound = Client()

        class Base(Record, client=bound):
            pass

        class Child(Base):
            pass

        assert resolve_client(Child) is bound

    def test_resolve_without_client(self):
        assert resolve_client(Invoice, required=False) is None

        with pytest.raises(ClientNotConfiguredError, match="Invoice"):
            resolve_client(Invoice)

    def test_bound_client_drives_primary_key(self):
        bound = Client()

        class Voucher(Record, client=bound):
            code = attr('string')

        bound.configure_model(Voucher, primary_key='code')

        assert Voucher.primary_key == 'code'
        assert Invoice.primary_key == 'id'

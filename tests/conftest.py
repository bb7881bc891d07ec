"""
Shared fixtures: an in-memory OrderStore double, a frozen clock and a
TestClient wired to both.
"""

import os
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

os.environ.setdefault("LOG_LEVEL", "warning")

from orders_api.app import create_app
from orders_api.errors import OrderNotFound, StoreError
from orders_api.service import OrderService


class InMemoryOrderStore:
    """Dict keyed by (client_id, order_id), same contract as PostgresOrderStore."""

    def __init__(self):
        self.orders = {}
        self.calls = []
        self.fail_with = None

    def _call(self, name):
        self.calls.append(name)
        if self.fail_with is not None:
            raise self.fail_with

    def put_order(self, order):
        self._call("put_order")
        key = (order.client_id, order.order_id)
        if key in self.orders:
            raise StoreError(f"duplicate key {key}")
        self.orders[key] = order.model_copy(deep=True)

    def update_installments(self, client_id, order_id, installments, updated_at):
        self._call("update_installments")
        current = self.orders.get((client_id, order_id))
        if current is None:
            raise OrderNotFound()
        updated = current.model_copy(update={"installments": installments, "updated_at": updated_at})
        self.orders[(client_id, order_id)] = updated
        return updated

    def query_by_client(self, client_id, payment_method=None):
        self._call("query_by_client")
        orders = [o for (cid, _), o in sorted(self.orders.items()) if cid == client_id]
        if payment_method is not None:
            orders = [o for o in orders if o.payment_method == payment_method]
        return orders

    def ping(self):
        self._call("ping")
        return True


class FrozenClock:
    def __init__(self, start=datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self):
        return self.now

    def tick(self, seconds=1):
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def store():
    return InMemoryOrderStore()


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def service(store, clock):
    return OrderService(store, clock=clock)


@pytest.fixture
def client(service):
    with TestClient(create_app(service=service)) as c:
        yield c


@pytest.fixture
def order_payload():
    return {
        "clientId": 1,
        "items": [{"productId": 10, "quantity": 2}],
        "paymentMethod": "pix",
        "installments": 3,
    }

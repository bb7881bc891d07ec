# orders_api/service.py
"""
Order use cases: create an order, amend its installments, list a client's orders.

Each operation validates its input, makes at most one store call and shapes
the response. Client mistakes raise ClientInputError before the store is
touched; anything that goes wrong after that is logged with its cause and
surfaced as InternalServerError, so callers only ever see the generic message.
"""
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Callable, Optional

import structlog
from pydantic import BaseModel, ValidationError

from .errors import ClientInputError, InternalServerError, OrdersApiError
from .ids import OrderIdGenerator
from .models import (
    InstallmentsPatch,
    InstallmentsUpdated,
    Order,
    OrderCreated,
    OrderIn,
    OrdersByClient,
    describe_validation_errors,
    parse_client_id,
    parse_order_key,
    parse_payment_method,
)
from .store import OrderStore

logger = structlog.get_logger()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _validate(model: type[BaseModel], payload: Any):
    if isinstance(payload, model):
        return payload
    if not isinstance(payload, dict):
        raise ClientInputError("request body must be a JSON object")
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise ClientInputError(describe_validation_errors(e.errors())) from e


@contextmanager
def _internal_errors(log, event: str):
    try:
        yield
    except OrdersApiError:
        raise
    except Exception as e:
        log.exception(event, error=str(e))
        raise InternalServerError() from e


class OrderService:
    def __init__(
        self,
        store: OrderStore,
        id_generator: Optional[Callable[[], int]] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.next_order_id = id_generator or OrderIdGenerator()
        self.clock = clock

    def create_order(self, payload) -> OrderCreated:
        order_in = _validate(OrderIn, payload)
        log = logger.bind(client_id=order_in.client_id)
        log.info("processing order", payment_method=order_in.payment_method.value, items=len(order_in.items))

        with _internal_errors(log, "create order failed"):
            now = self.clock()
            order = Order(
                client_id=order_in.client_id,
                order_id=self.next_order_id(),
                items=order_in.items,
                payment_method=order_in.payment_method,
                installments=order_in.installments,
                created_at=now,
                updated_at=now,
            )
            self.store.put_order(order)

        log.info("order created", order_id=order.order_id)
        return OrderCreated(order_id=order.order_id, client_id=order.client_id)

    def update_installments(self, client_id: Optional[str], order_id: Optional[str], payload) -> InstallmentsUpdated:
        cid, oid = parse_order_key(client_id, order_id)
        patch = _validate(InstallmentsPatch, payload)
        log = logger.bind(client_id=cid, order_id=oid)
        log.info("updating installments", installments=patch.installments)

        # OrderNotFound passes through untouched
        with _internal_errors(log, "update installments failed"):
            order = self.store.update_installments(cid, oid, patch.installments, self.clock())

        log.info("installments updated", installments=order.installments)
        return InstallmentsUpdated(client_id=cid, order_id=oid, installments=order.installments)

    def list_orders_by_client(self, client_id: Optional[str], payment_method: Optional[str] = None) -> OrdersByClient:
        cid = parse_client_id(client_id)
        method = parse_payment_method(payment_method)
        log = logger.bind(client_id=cid, payment_method=method.value if method else "all")
        log.info("fetching client orders")

        with _internal_errors(log, "list orders failed"):
            orders = self.store.query_by_client(cid, method)

        log.info("orders found", count=len(orders))
        return OrdersByClient(client_id=cid, payment_method=method, count=len(orders), orders=orders)

    def healthy(self) -> bool:
        with _internal_errors(logger, "health check failed"):
            return self.store.ping()

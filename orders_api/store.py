# orders_api/store.py
from datetime import datetime
from typing import List, Optional, Protocol

import psycopg
import structlog
from psycopg import sql
from psycopg.types.json import Jsonb
from psycopg_pool import ConnectionPool

from .db import ORDERS_TABLE, ensure_schema, fetch_all, fetch_one, get_conn
from .errors import OrderNotFound, StoreError
from .models import Order, PaymentMethod

logger = structlog.get_logger()


class OrderStore(Protocol):
    """Key-value view of the orders table, keyed by (client_id, order_id)."""

    def put_order(self, order: Order) -> None: ...

    def update_installments(
        self, client_id: int, order_id: int, installments: int, updated_at: datetime
    ) -> Order: ...

    def query_by_client(
        self, client_id: int, payment_method: Optional[PaymentMethod] = None
    ) -> List[Order]: ...

    def ping(self) -> bool: ...


_COLUMNS = "client_id, order_id, items, payment_method, installments, created_at, updated_at"


def _row_to_order(row) -> Order:
    return Order(**row)


class PostgresOrderStore:
    def __init__(self, pool: ConnectionPool, table: str = ORDERS_TABLE):
        self.pool = pool
        self.table = table
        self._ident = sql.Identifier(table)

    def ensure_schema(self):
        try:
            ensure_schema(self.pool, self.table)
        except psycopg.Error as e:
            raise StoreError(f"ensure_schema failed: {e}") from e

    def put_order(self, order: Order) -> None:
        # plain INSERT: the primary key refuses an existing (client_id, order_id)
        query = sql.SQL(
            "INSERT INTO {table} (" + _COLUMNS + ") VALUES (%s, %s, %s, %s, %s, %s, %s)"
        ).format(table=self._ident)
        params = (
            order.client_id,
            order.order_id,
            Jsonb([item.model_dump() for item in order.items]),
            order.payment_method.value,
            order.installments,
            order.created_at,
            order.updated_at,
        )
        with get_conn(self.pool) as conn:
            try:
                with conn.cursor() as cur:
                    cur.execute(query, params)
                conn.commit()
            except psycopg.Error as e:
                conn.rollback()
                raise StoreError(f"put_order failed: {e}") from e

    def update_installments(self, client_id, order_id, installments, updated_at) -> Order:
        # conditional on the key: a missing order is never created here
        query = sql.SQL(
            "UPDATE {table} SET installments = %s, updated_at = %s "
            "WHERE client_id = %s AND order_id = %s RETURNING " + _COLUMNS
        ).format(table=self._ident)
        with get_conn(self.pool) as conn:
            try:
                row = fetch_one(conn, query, (installments, updated_at, client_id, order_id))
                conn.commit()
            except psycopg.Error as e:
                conn.rollback()
                raise StoreError(f"update_installments failed: {e}") from e
        if not row:
            raise OrderNotFound()
        return _row_to_order(row)

    def query_by_client(self, client_id, payment_method=None) -> List[Order]:
        query = sql.SQL(
            "SELECT " + _COLUMNS + " FROM {table} WHERE client_id = %s ORDER BY order_id"
        ).format(table=self._ident)
        with get_conn(self.pool) as conn:
            try:
                rows = fetch_all(conn, query, (client_id,))
            except psycopg.Error as e:
                raise StoreError(f"query_by_client failed: {e}") from e
        orders = [_row_to_order(r) for r in rows]
        # post-filter: the whole partition is read either way
        if payment_method is not None:
            orders = [o for o in orders if o.payment_method == payment_method]
        logger.debug("partition read", client_id=client_id, scanned=len(rows), returned=len(orders))
        return orders

    def ping(self) -> bool:
        try:
            with get_conn(self.pool) as conn:
                row = fetch_one(conn, "SELECT 1 AS ok")
        except psycopg.Error as e:
            raise StoreError(f"ping failed: {e}") from e
        return row["ok"] == 1

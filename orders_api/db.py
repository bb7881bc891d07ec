# orders_api/db.py
import os
from contextlib import contextmanager

from psycopg import sql
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

DATABASE_URL = os.getenv("DATABASE_URL")
POOL_MIN = int(os.getenv("APP_POOL_MIN", "1"))
POOL_MAX = int(os.getenv("APP_POOL_MAX", "10"))
ORDERS_TABLE = os.getenv("ORDERS_TABLE", "orders")

ORDERS_DDL = """
    CREATE TABLE IF NOT EXISTS {table} (
        client_id      BIGINT      NOT NULL,
        order_id       BIGINT      NOT NULL,
        items          JSONB       NOT NULL,
        payment_method TEXT        NOT NULL,
        installments   INTEGER     NOT NULL CHECK (installments >= 1),
        created_at     TIMESTAMPTZ NOT NULL,
        updated_at     TIMESTAMPTZ NOT NULL,
        PRIMARY KEY (client_id, order_id)
    )
"""


def create_pool(conninfo=None, min_size=None, max_size=None) -> ConnectionPool:
    # opened explicitly by the app lifespan
    return ConnectionPool(
        conninfo=conninfo or DATABASE_URL or "",
        min_size=min_size or POOL_MIN,
        max_size=max_size or POOL_MAX,
        kwargs={"autocommit": False},  # we’ll manage transactions
        open=False,
    )


@contextmanager
def get_conn(pool: ConnectionPool):
    with pool.connection() as conn:
        yield conn


def fetch_all(conn, query, params=None):
    with conn.cursor(row_factory=dict_row) as cur:
        cur.execute(query, params or ())
        return cur.fetchall()


def fetch_one(conn, query, params=None):
    with conn.cursor(row_factory=dict_row) as cur:
        cur.execute(query, params or ())
        return cur.fetchone()


def execute(conn, query, params=None):
    with conn.cursor() as cur:
        cur.execute(query, params or ())


def ensure_schema(pool: ConnectionPool, table: str = ORDERS_TABLE):
    with get_conn(pool) as conn:
        execute(conn, sql.SQL(ORDERS_DDL).format(table=sql.Identifier(table)))
        conn.commit()

# orders_api/models.py
import re
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt
from pydantic.alias_generators import to_camel

from .errors import ClientInputError


class PaymentMethod(str, Enum):
    credit_card = "credit_card"
    debit_card = "debit_card"
    pix = "pix"


ALLOWED_PAYMENT_METHODS = ", ".join(m.value for m in PaymentMethod)
_INT_RE = re.compile(r"[+-]?[0-9]+")


class CamelModel(BaseModel):
    # wire format is camelCase, python side is snake_case
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# column ranges: client_id/order_id BIGINT, installments INTEGER
BIGINT_MIN, BIGINT_MAX = -(2**63), 2**63 - 1
INTEGER_MAX = 2**31 - 1


class OrderItem(CamelModel):
    product_id: StrictInt = Field(ge=BIGINT_MIN, le=BIGINT_MAX)
    quantity: StrictInt = Field(ge=1, le=INTEGER_MAX)


class OrderIn(CamelModel):
    client_id: StrictInt = Field(ge=BIGINT_MIN, le=BIGINT_MAX)
    items: List[OrderItem] = Field(min_length=1)
    payment_method: PaymentMethod
    installments: StrictInt = Field(ge=1, le=INTEGER_MAX)


class InstallmentsPatch(CamelModel):
    installments: StrictInt = Field(ge=1, le=INTEGER_MAX)


class Order(CamelModel):
    client_id: int
    order_id: int
    items: List[OrderItem]
    payment_method: PaymentMethod
    installments: int
    created_at: datetime
    updated_at: datetime


# Responses

class OrderCreated(CamelModel):
    success: bool = True
    order_id: int
    client_id: int


class InstallmentsUpdated(CamelModel):
    success: bool = True
    client_id: int
    order_id: int
    installments: int


class OrdersByClient(CamelModel):
    success: bool = True
    client_id: int
    payment_method: Optional[PaymentMethod] = None
    count: int
    orders: List[Order]


class ErrorOut(BaseModel):
    success: bool = False
    error: str


# Path / query parsing

def parse_int_param(value: Optional[str]) -> Optional[int]:
    """Parse a path parameter as a base-10 integer, None when it isn't one."""
    if value is None:
        return None
    value = value.strip()
    if not _INT_RE.fullmatch(value):
        return None
    return int(value)


def _is_bigint(value: int) -> bool:
    return BIGINT_MIN <= value <= BIGINT_MAX


def parse_client_id(value: Optional[str]) -> int:
    if value is None or not value.strip():
        raise ClientInputError("clientId required")
    client_id = parse_int_param(value)
    if client_id is None:
        raise ClientInputError("clientId must be numeric")
    if not _is_bigint(client_id):
        raise ClientInputError("clientId out of range")
    return client_id


def parse_order_key(client_id: Optional[str], order_id: Optional[str]) -> tuple[int, int]:
    if not (client_id and client_id.strip()) or not (order_id and order_id.strip()):
        raise ClientInputError("clientId and orderId required")
    cid, oid = parse_int_param(client_id), parse_int_param(order_id)
    if cid is None or oid is None:
        raise ClientInputError("clientId and orderId must be numeric")
    if not (_is_bigint(cid) and _is_bigint(oid)):
        raise ClientInputError("clientId and orderId out of range")
    return cid, oid


def parse_payment_method(value: Optional[str]) -> Optional[PaymentMethod]:
    # empty query value means "no filter"
    if not value:
        return None
    try:
        return PaymentMethod(value)
    except ValueError:
        raise ClientInputError(f"invalid paymentMethod, allowed: {ALLOWED_PAYMENT_METHODS}") from None


def describe_validation_errors(errors) -> str:
    """Flatten pydantic errors into one message, e.g. 'items.0.quantity: Input should be ...'."""
    parts = []
    for err in errors:
        loc = [str(p) for p in err.get("loc", ()) if p != "body"]
        parts.append(f"{'.'.join(loc)}: {err['msg']}" if loc else err["msg"])
    return "; ".join(parts) or "invalid request"

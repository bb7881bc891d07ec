# orders_api/app.py
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

import structlog
from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .db import create_pool
from .errors import OrdersApiError
from .logging_config import configure_logging
from .models import (
    ErrorOut,
    InstallmentsPatch,
    InstallmentsUpdated,
    OrderCreated,
    OrderIn,
    OrdersByClient,
    describe_validation_errors,
)
from .service import OrderService
from .store import OrderStore, PostgresOrderStore

logger = structlog.get_logger()

ERROR_RESPONSES = {400: {"model": ErrorOut}, 500: {"model": ErrorOut}}


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


@asynccontextmanager
async def lifespan(app: FastAPI):
    pool = create_pool() if app.state.service is None else None
    try:
        if pool is not None:
            pool.open(wait=True)
            store = PostgresOrderStore(pool)
            store.ensure_schema()
            app.state.service = OrderService(store)
            logger.info("orders store ready", table=store.table)
        yield
    finally:
        if pool is not None:
            pool.close()


def get_service(request: Request) -> OrderService:
    return request.app.state.service


def create_app(store: Optional[OrderStore] = None, service: Optional[OrderService] = None) -> FastAPI:
    """Build the API. Without a store or service the lifespan connects to DATABASE_URL."""
    configure_logging()
    app = FastAPI(title="Orders API", version="0.1.0", lifespan=lifespan)
    app.state.service = service or (OrderService(store) if store is not None else None)

    @app.exception_handler(OrdersApiError)
    async def orders_api_error(request: Request, exc: OrdersApiError):
        return _error(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def request_validation_error(request: Request, exc: RequestValidationError):
        return _error(400, describe_validation_errors(exc.errors()))

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.exception("unhandled error", path=request.url.path, exc_info=exc)
        return _error(500, "internal server error")

    # Health

    @app.get("/health/db")
    def health_db(service: OrderService = Depends(get_service)):
        try:
            return {"db_ok": service.healthy()}
        except OrdersApiError as e:
            return JSONResponse(status_code=500, content={"db_ok": False, "error": e.message})

    # Orders

    @app.post("/", response_model=OrderCreated, status_code=201, responses=ERROR_RESPONSES)
    def create_order(body: OrderIn, service: OrderService = Depends(get_service)):
        return service.create_order(body)

    @app.get("/orders", response_model=OrdersByClient, responses=ERROR_RESPONSES)
    def list_orders_without_client(service: OrderService = Depends(get_service)):
        return service.list_orders_by_client(None)

    @app.get(
        "/orders/{client_id}",
        response_model=OrdersByClient,
        response_model_exclude_none=True,
        responses=ERROR_RESPONSES,
    )
    def list_orders_by_client(
        client_id: str,
        payment_method: Optional[str] = Query(None, alias="paymentMethod"),
        service: OrderService = Depends(get_service),
    ):
        return service.list_orders_by_client(client_id, payment_method)

    @app.patch("/orders", response_model=InstallmentsUpdated, responses=ERROR_RESPONSES)
    @app.patch("/orders/{client_id}", response_model=InstallmentsUpdated, responses=ERROR_RESPONSES)
    def update_installments_without_key(client_id: Optional[str] = None, service: OrderService = Depends(get_service)):
        return service.update_installments(client_id, None, {})

    @app.patch(
        "/orders/{client_id}/{order_id}",
        response_model=InstallmentsUpdated,
        responses={**ERROR_RESPONSES, 404: {"model": ErrorOut}},
    )
    def update_installments(
        client_id: str,
        order_id: str,
        body: InstallmentsPatch,
        service: OrderService = Depends(get_service),
    ):
        return service.update_installments(client_id, order_id, body)

    return app


app = create_app()

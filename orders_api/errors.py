# orders_api/errors.py


class OrdersApiError(Exception):
    """Base error rendered as {"success": false, "error": message}."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ClientInputError(OrdersApiError):
    status_code = 400


class OrderNotFound(OrdersApiError):
    status_code = 404

    def __init__(self, message: str = "order not found"):
        super().__init__(message)


class InternalServerError(OrdersApiError):
    status_code = 500

    def __init__(self):
        super().__init__("internal server error")


class StoreError(Exception):
    """Raised by the store adapter; the driver exception is kept as __cause__."""

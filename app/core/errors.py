class InventoryError(Exception):
    """Base error for inventory operations.

    ``code`` is a stable kind callers can branch on, ``message`` is the
    display string and ``status_code`` the HTTP status the API renders.
    """

    code = "INVENTORY_ERROR"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class NotFoundError(InventoryError):
    code = "NOT_FOUND"
    status_code = 404


class ConflictError(InventoryError):
    code = "CONFLICT"
    status_code = 409


class InvalidStateError(InventoryError):
    code = "INVALID_STATE"
    status_code = 409


class InvalidLinkError(InventoryError):
    code = "INVALID_LINK"
    status_code = 403


class ValidationError(InventoryError):
    code = "VALIDATION_ERROR"
    status_code = 400


class TransactionTimeoutError(InventoryError):
    """The finish transaction ran past its execution budget and was rolled back.

    Safe to retry; nothing was written.
    """

    code = "TRANSACTION_TIMEOUT"
    status_code = 503


__all__ = [
    "ConflictError",
    "InvalidLinkError",
    "InvalidStateError",
    "InventoryError",
    "NotFoundError",
    "TransactionTimeoutError",
    "ValidationError",
]

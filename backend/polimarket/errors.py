# Overview: Business error taxonomy shared by services and routes.

"""
Error taxonomy for the sales core.

Every error carries a stable ``code`` (returned to API clients), an HTTP
``status_code`` and a ``details`` dict with enough context to act on
(which products lack stock, which seller is unauthorized).

Business outcomes (seller not authorized, insufficient stock, ...) are
raised as typed errors and never retried: retrying the same input cannot
change the answer. InternalError and its subclasses are storage faults that
survived the retry policy in services.concurrency.
"""

from __future__ import annotations


class DomainError(Exception):
    """Base class for expected business failures."""

    code = "DOMAIN_ERROR"
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code, "details": self.details}


class SellerNotAuthorized(DomainError):
    code = "SELLER_NOT_AUTHORIZED"
    status_code = 403

    def __init__(self, seller_code: str, reason: str):
        super().__init__(
            f"Seller {seller_code} is not authorized to sell",
            details={"seller_code": seller_code, "reason": reason},
        )
        self.seller_code = seller_code
        self.reason = reason


class CustomerNotFound(DomainError):
    code = "CUSTOMER_NOT_FOUND"
    status_code = 404

    def __init__(self, customer_id: str):
        super().__init__(f"Customer {customer_id} not found", details={"customer_id": customer_id})
        self.customer_id = customer_id


class ProductNotFound(DomainError):
    code = "PRODUCT_NOT_FOUND"
    status_code = 404

    def __init__(self, product_ids: list[str] | str):
        if isinstance(product_ids, str):
            product_ids = [product_ids]
        super().__init__(
            "Product not found: " + ", ".join(product_ids),
            details={"product_ids": list(product_ids)},
        )
        self.product_ids = list(product_ids)


class InsufficientStock(DomainError):
    """
    Raised when one or more products cannot cover the requested quantity.

    ``items`` holds one dict per offending product:
    {"product_id", "requested_quantity", "available_stock"}.
    """

    code = "INSUFFICIENT_STOCK"
    status_code = 409

    def __init__(self, items: list[dict]):
        self.items = list(items)
        self.product_ids = [item["product_id"] for item in self.items]
        super().__init__(
            "Insufficient stock for product(s): " + ", ".join(self.product_ids),
            details={"product_ids": self.product_ids, "items": self.items},
        )


class SaleNotFound(DomainError):
    code = "SALE_NOT_FOUND"
    status_code = 404

    def __init__(self, sale_id: str):
        super().__init__(f"Sale {sale_id} not found", details={"sale_id": sale_id})
        self.sale_id = sale_id


class InvalidSaleState(DomainError):
    code = "INVALID_SALE_STATE"
    status_code = 409

    def __init__(self, sale_id: str, status: str, operation: str):
        super().__init__(
            f"Cannot {operation} sale {sale_id} in status {status}",
            details={"sale_id": sale_id, "status": status, "operation": operation},
        )


class AlreadyCancelled(DomainError):
    code = "ALREADY_CANCELLED"
    status_code = 409

    def __init__(self, sale_id: str):
        super().__init__(f"Sale {sale_id} is already cancelled", details={"sale_id": sale_id})
        self.sale_id = sale_id


class HREmployeeInvalid(DomainError):
    code = "HR_EMPLOYEE_INVALID"
    status_code = 403

    def __init__(self, hr_employee_id: str):
        super().__init__(
            f"HR employee {hr_employee_id} is not valid or inactive",
            details={"hr_employee_id": hr_employee_id},
        )


class SellerNotFound(DomainError):
    code = "SELLER_NOT_FOUND"
    status_code = 404

    def __init__(self, seller_code: str):
        super().__init__(f"Seller {seller_code} not found", details={"seller_code": seller_code})


class SellerAlreadyExists(DomainError):
    code = "SELLER_ALREADY_EXISTS"
    status_code = 409

    def __init__(self, seller_code: str):
        super().__init__(f"Seller {seller_code} already exists", details={"seller_code": seller_code})


class ProductAlreadyExists(DomainError):
    code = "PRODUCT_ALREADY_EXISTS"
    status_code = 409

    def __init__(self, product_id: str):
        super().__init__(f"Product {product_id} already exists", details={"product_id": product_id})


class CustomerAlreadyExists(DomainError):
    code = "CUSTOMER_ALREADY_EXISTS"
    status_code = 409

    def __init__(self, customer_id: str):
        super().__init__(f"Customer {customer_id} already exists", details={"customer_id": customer_id})


class InternalError(DomainError):
    """Storage or transport failure that could not be recovered by retrying."""

    code = "INTERNAL_ERROR"
    status_code = 500

    def to_dict(self) -> dict:
        # Storage errors are never echoed back to clients.
        return {"error": "Internal server error", "code": self.code, "details": {}}


class InconsistentState(InternalError):
    """Compensation failed; stock and the sale ledger may disagree."""

    code = "INCONSISTENT_STATE"


class CancellationIncomplete(InternalError):
    """Some stock restorations of a cancellation failed; the sale stays PROCESSED."""

    code = "CANCELLATION_INCOMPLETE"

"""Result types returned by the order service.

Expected failures come back as values carrying an `ErrorKind` and a
message, so every caller (HTTP route, cart manager, tests) handles them the
same way.
"""

from dataclasses import dataclass

from storefront.order.order import Order
from storefront.shared.results import ErrorKind


@dataclass
class OrderResult:
    ok: bool
    order: Order | None = None
    error_kind: ErrorKind | None = None
    message: str | None = None

    @classmethod
    def success(cls, order: Order) -> "OrderResult":
        return cls(ok=True, order=order)

    @classmethod
    def failure(cls, error_kind: ErrorKind, message: str, order: Order | None = None) -> "OrderResult":
        return cls(ok=False, order=order, error_kind=error_kind, message=message)


@dataclass
class CheckoutResult:
    ok: bool
    order: Order | None = None
    session_id: str | None = None
    url: str | None = None
    error_kind: ErrorKind | None = None
    message: str | None = None

    @classmethod
    def failure(cls, error_kind: ErrorKind, message: str, order: Order | None = None) -> "CheckoutResult":
        return cls(ok=False, order=order, error_kind=error_kind, message=message)

    @classmethod
    def from_order_result(cls, result: OrderResult) -> "CheckoutResult":
        return cls(ok=result.ok, order=result.order, error_kind=result.error_kind, message=result.message)

from __future__ import annotations


class StorefrontError(Exception):
    """Base class for failures raised by the cart, pricing and order modules."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class CheckoutValidationError(StorefrontError):
    pass


class EmptyCartError(CheckoutValidationError):
    def __init__(self, message: str = "Your cart is empty."):
        super().__init__(message)


class InvalidCouponError(CheckoutValidationError):
    pass


class LookupMissError(StorefrontError):
    pass


class InvalidStatusTransition(StorefrontError):
    pass

# backend/services/errors.py
"""Domain errors raised by the storefront services.

Each error carries the HTTP status the API answers with; ``main.py``
registers a single handler that turns any ``StorefrontError`` into a JSON
response, so services never import FastAPI.
"""
from typing import Dict, Optional


class StorefrontError(Exception):
    status_code = 400
    default_message = "Request failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"detail": self.message}


# --- validation -------------------------------------------------------------

class ValidationFailed(StorefrontError):
    status_code = 422
    default_message = "Validation failed"

    def __init__(self, errors: Dict[str, str], message: Optional[str] = None):
        self.errors = dict(errors)
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"detail": self.message, "errors": self.errors}


class CheckoutValidationError(ValidationFailed):
    default_message = "Please correct the highlighted fields"


# --- authentication ---------------------------------------------------------

class AuthError(StorefrontError):
    status_code = 401
    default_message = "Authentication failed"


class Unauthenticated(AuthError):
    default_message = "Please login to continue"


class AccountDeletedError(AuthError):
    default_message = "Your account has been deleted. Please contact support if this is an error."


class EmailTakenError(AuthError):
    status_code = 400
    default_message = "User already registered"


# --- data -------------------------------------------------------------------

class NotFound(StorefrontError):
    status_code = 404
    default_message = "Not found"


class MutationError(StorefrontError):
    status_code = 400
    default_message = "Operation failed"


class CartMutationError(MutationError):
    pass


class OutOfStockError(MutationError):
    default_message = "Product is out of stock"


class EmptyCartError(StorefrontError):
    status_code = 400
    default_message = "Your cart is empty"


class CheckoutError(MutationError):
    default_message = "Failed to place order"


class LastAdminError(StorefrontError):
    status_code = 409
    default_message = "Cannot remove the last administrator"


class StorageError(StorefrontError):
    status_code = 502
    default_message = "Failed to upload file"

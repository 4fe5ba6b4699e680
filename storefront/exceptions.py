"""Exceptions raised by the cart and checkout engine."""


class StorefrontError(Exception):
    """Base exception for all engine errors."""
    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['status'] = 'error'
        rv['error'] = type(self).__name__
        return rv


class OutOfStockError(StorefrontError):
    """Raised when a product with no stock is added to the cart."""
    def __init__(self, product_id, product_name=None):
        name = product_name or product_id
        super().__init__(
            f"{name} is out of stock",
            status_code=409,
            payload={'product_id': product_id},
        )
        self.product_id = product_id


class EmptyCartError(StorefrontError):
    """Raised when checkout begins with nothing in the cart."""
    def __init__(self, message="Your cart is empty"):
        super().__init__(message, 400)


class CheckoutStateError(StorefrontError):
    """Raised when a checkout operation is not allowed in the current state."""
    def __init__(self, operation, state):
        super().__init__(
            f"Cannot {operation} while checkout is {state}",
            status_code=409,
            payload={'state': state},
        )
        self.state = state


class DuplicateSubmissionError(StorefrontError):
    """Raised when an order is submitted while a submission is in flight."""
    def __init__(self):
        super().__init__(
            "Order submission already in progress",
            status_code=409,
            payload={'state': 'submitting'},
        )


class CheckoutIncompleteError(StorefrontError):
    """Raised when submitting without an address or payment selection."""
    def __init__(self, missing):
        super().__init__(
            f"Please complete your checkout details: {', '.join(missing)}",
            status_code=400,
            payload={'missing': list(missing)},
        )


class SubmissionFailedError(StorefrontError):
    """Raised when the order API rejects the order or cannot be reached."""
    def __init__(self, message="Failed to submit order", upstream_status=None):
        payload = {'upstream_status': upstream_status} if upstream_status else None
        super().__init__(message, 502, payload)
        self.upstream_status = upstream_status


class StoreApiError(StorefrontError):
    """Raised by the store API client on an unusable response."""
    def __init__(self, message, upstream_status=None):
        payload = {'upstream_status': upstream_status} if upstream_status else None
        super().__init__(message, 502, payload)
        self.upstream_status = upstream_status


class NotFoundError(StorefrontError):
    """Raised when a resource is not found."""
    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)


class ProductNotFoundError(NotFoundError):
    """Raised when the product source has no such product."""
    def __init__(self, product_id):
        super().__init__("Product not found", {'product_id': product_id})


class SessionNotFoundError(NotFoundError):
    """Raised when a shopping session id is unknown or expired."""
    def __init__(self, session_id=None):
        super().__init__("Session not found", {'session_id': session_id} if session_id else None)

"""Custom exceptions for the storefront API."""


class ShopError(Exception):
    """Base exception for all application errors."""

    kind = 'InternalError'

    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['error'] = self.kind
        rv['status'] = 'error'
        return rv


class NotFoundError(ShopError):
    """Exception raised when a resource is not found."""
    kind = 'NotFound'

    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)


class ForbiddenError(ShopError):
    """Raised when a caller is authenticated but not allowed to touch the resource."""
    kind = 'Forbidden'

    def __init__(self, message="You are not allowed to access this resource"):
        super().__init__(message, 403)


class UnauthorizedError(ShopError):
    """Raised when an identity is required but missing or invalid."""
    kind = 'Unauthorized'

    def __init__(self, message="Authentication required"):
        super().__init__(message, 401)


class InvalidArgumentError(ShopError):
    """Raised for structurally invalid input."""
    kind = 'InvalidArgument'

    def __init__(self, message, payload=None):
        super().__init__(message, 400, payload)


class BusinessLogicError(ShopError):
    """Exception raised for business logic violations."""
    kind = 'BusinessRule'

    def __init__(self, message, status_code=400, payload=None):
        super().__init__(message, status_code, payload)


class ProductUnavailableError(BusinessLogicError):
    """Raised when a product exists but is not active."""
    kind = 'ProductUnavailable'

    def __init__(self, product_name):
        self.product_name = product_name
        super().__init__(f'Product "{product_name}" is not available')


class InsufficientStockError(BusinessLogicError):
    """Raised when an operation fails due to lack of stock."""
    kind = 'InsufficientStock'

    def __init__(self, product_name, requested, available, message=None):
        self.product_name = product_name
        self.requested = requested
        self.available = available
        if message is None:
            message = (
                f'Insufficient stock for "{product_name}". '
                f'Available: {available}, Requested: {requested}'
            )
        super().__init__(
            message,
            status_code=409,
            payload={'product': product_name, 'requested': requested, 'available': available},
        )


class InvalidStateError(BusinessLogicError):
    """Raised when a transition is not allowed from the entity's current state."""
    kind = 'InvalidState'

    def __init__(self, message):
        super().__init__(message, status_code=409)


class EmptyCartError(BusinessLogicError):
    """Raised when checking out a cart without items."""
    kind = 'EmptyCart'

    def __init__(self, message='Cannot checkout with an empty cart'):
        super().__init__(message)


class CheckoutBlockedError(BusinessLogicError):
    """Raised when cart validation finds problems before checkout."""
    kind = 'CheckoutBlocked'

    def __init__(self, issues):
        self.issues = list(issues)
        super().__init__(
            f'Cart validation failed: {", ".join(self.issues)}',
            payload={'issues': self.issues},
        )

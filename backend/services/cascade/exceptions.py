"""Custom exceptions for transport cascade management."""


class TransportCascadeError(Exception):
    """Base class for errors surfaced to API clients."""
    error_code = "transport_error"
    status_code = 400
    default_message = "Transport request could not be processed"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(TransportCascadeError):
    """Raised when setup or counter input violates policy. Nothing is persisted."""
    error_code = "validation_error"
    status_code = 400
    default_message = "Invalid transport request"


class OrderNotFoundError(TransportCascadeError):
    """Raised when an order cannot be found."""
    error_code = "order_not_found"
    status_code = 404
    default_message = "Order not found"


class OfferNotFoundError(TransportCascadeError):
    """Raised when a transport offer cannot be found."""
    error_code = "offer_not_found"
    status_code = 404
    default_message = "Transport offer not found"


class OfferNotActiveError(TransportCascadeError):
    """Raised when an offer's tier window has not opened yet."""
    error_code = "offer_not_active"
    status_code = 409
    default_message = "This offer is not open for you yet"


class OfferClosedError(TransportCascadeError):
    """Raised when the cascade was already resolved, exhausted or cancelled."""
    error_code = "offer_closed"
    status_code = 410
    default_message = "This offer is no longer available"


class AssignmentNotFoundError(TransportCascadeError):
    """Raised when a transport assignment cannot be found."""
    error_code = "assignment_not_found"
    status_code = 404
    default_message = "Transport assignment not found"


class CascadeNotResolvedError(Exception):
    """Raised when an assignment is requested for a cascade without a winner."""
    pass

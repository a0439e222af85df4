class PaymentError(Exception):
    """Base class for payment relay errors."""


class BadRequest(PaymentError):
    """The client sent an unusable payment request."""


class GatewayError(PaymentError):
    """Daraja refused a request or could not be reached.

    ``payload`` holds the upstream error body (parsed JSON when possible,
    raw text otherwise) so it can be passed back to the caller.
    """

    def __init__(self, message, payload=None, status_code=None):
        super().__init__(message)
        self.payload = payload
        self.status_code = status_code

    def to_response(self):
        return self.payload if self.payload is not None else str(self)

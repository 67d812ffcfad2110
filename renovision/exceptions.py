"""Service-layer exceptions.

Services raise these; the app-level error handlers in create_app() turn
them into JSON responses with the matching status code.
"""


class ValidationError(ValueError):
    """Bad or missing input. Maps to HTTP 400."""

    status_code = 400


class NotFoundError(LookupError):
    """Unknown company, lead, or upload. Maps to HTTP 404."""

    status_code = 404


class ProviderError(RuntimeError):
    """The image-generation provider failed. Maps to HTTP 500.

    `details` carries whatever the provider reported so the caller can
    surface it.
    """

    status_code = 500

    def __init__(self, message, details=None):
        super().__init__(message)
        self.details = details


class EmailDeliveryError(RuntimeError):
    """An email could not be handed to the SMTP relay."""

# storefront/domain/errors.py


class StorefrontError(Exception):
    """Base for every error a use case may surface to the caller."""

    status_code = 400

    def __init__(self, message: str, redirect_to: str | None = None):
        super().__init__(message)
        self.message = message
        self.redirect_to = redirect_to


class ValidationFailed(StorefrontError):
    status_code = 422

    def __init__(self, messages: list[str] | str):
        if isinstance(messages, str):
            messages = [messages]
        self.messages = list(messages)
        super().__init__(join_messages(self.messages))


class NotFound(StorefrontError):
    status_code = 404


class Unauthorized(StorefrontError):
    status_code = 401

    def __init__(self, message: str = "Sign in required", redirect_to: str | None = "/sign-in"):
        super().__init__(message, redirect_to)


class Forbidden(StorefrontError):
    status_code = 403


class Conflict(StorefrontError):
    status_code = 409


class StockExceeded(StorefrontError):
    status_code = 409


class PreconditionMissing(StorefrontError):
    """Checkout step not completed yet; redirect_to names the step to go back to."""

    status_code = 400

    def __init__(self, message: str, redirect_to: str):
        super().__init__(message, redirect_to)


class PaymentSignatureInvalid(StorefrontError):
    status_code = 400


class ProviderError(StorefrontError):
    """Upstream payment, email, storage or identity provider failure."""

    status_code = 502


def join_messages(messages: list[str]) -> str:
    # "Name must be at least 3 characters. Price is required."
    cleaned = [m.rstrip(".") for m in messages if m]
    if not cleaned:
        return ""
    return ". ".join(cleaned) + "."

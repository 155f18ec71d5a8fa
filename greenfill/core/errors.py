"""Exception hierarchy for the kiosk and the refill ledger."""


class GreenfillError(Exception):
    """Base exception for all Greenfill errors."""


# --- Client-side input ---
class ValidationError(GreenfillError):
    """Form input rejected before anything reaches the network."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidVolume(ValidationError):
    """Volume is not a positive finite number of millilitres."""


class InvalidAmount(GreenfillError):
    """Negative or non-finite money amount."""


class IllegalOrder(GreenfillError):
    """Order built from an unknown brand, unknown location or bad volume."""


# --- Boundary ---
class Unauthorized(GreenfillError):
    """Missing or rejected bearer credential."""


class UpstreamFailure(GreenfillError):
    """Auth provider, data store or backend answered with an error."""


class AuthProviderError(UpstreamFailure):
    """The auth provider refused a request and told us why."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class InvalidCredentials(UpstreamFailure):
    """Sign-in refused. Never says whether the email or the password was wrong."""

    def __init__(self):
        super().__init__("Invalid credentials")

"""Exception hierarchy for controller inventory access."""


class ControllerError(Exception):
    """Base exception for all controller errors."""


class AuthenticationError(ControllerError):
    """Login to the controller failed."""


class APIError(ControllerError):
    """REST API request failed."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class InventoryError(ControllerError):
    """Inventory data could not be loaded or parsed."""

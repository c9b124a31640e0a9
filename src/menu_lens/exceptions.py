"""Custom exceptions for menu-lens."""


class MenuLensError(Exception):
    """Base exception for menu-lens."""

    pass


class ImageError(MenuLensError):
    """Raised when image cannot be read or is invalid."""

    pass


class ModelCallError(MenuLensError):
    """Raised when a vision model request fails or returns nothing usable.

    ``rounds`` holds the request records made before the failure, so callers
    can still log them.
    """

    def __init__(self, message: str = "", rounds: list | None = None):
        super().__init__(message)
        self.rounds = list(rounds or [])


class AuthenticationError(ModelCallError):
    """Raised when API key is invalid or missing."""

    pass


class RateLimitError(ModelCallError):
    """Raised when API rate limit is exceeded."""

    pass


class UnparseableResponseError(MenuLensError):
    """Raised when model text cannot be repaired into JSON."""

    pass


class NoDishesDetectedError(MenuLensError):
    """Raised when extraction finished without a single menu item."""

    def __init__(self, message: str = "Unable to detect dishes in the uploaded image. Try a clearer photo."):
        super().__init__(message)

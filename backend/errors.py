"""Error taxonomy shared by the repositories and the HTTP layer.

Every error carries the HTTP status it maps to; ``main.py`` turns them into
``{"error": message}`` responses.
"""

from fastapi import status


class GiftreeError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(GiftreeError):
    """Bad input shape, size or enum value."""

    status_code = status.HTTP_400_BAD_REQUEST


class AuthRequired(GiftreeError):
    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Login required"):
        super().__init__(message)


class NotFound(GiftreeError):
    status_code = status.HTTP_404_NOT_FOUND


class InternalError(GiftreeError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class UpstreamAuthError(InternalError):
    """The identity provider rejected or failed a step of the OAuth dance.

    ``category`` is the coarse reason sent back to the browser in the
    ``error`` query parameter; the provider's own error body stays server side.
    """

    def __init__(self, category: str, message: str = "Authentication failed"):
        super().__init__(message)
        self.category = category


class StoreError(InternalError):
    """The key-value store failed to serve a get, put or delete."""


class CorruptRecordError(InternalError):
    """A stored record did not validate against its model."""

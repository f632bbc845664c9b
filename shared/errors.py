"""Error taxonomy for the document store and its remote mirror."""


class StoreError(Exception):
    """Base class for all document store errors."""


class NotAuthenticated(StoreError):
    """A remote operation was attempted without a signed-in identity."""


class RemoteUnavailable(StoreError):
    """The remote mirror could not be reached or rejected the request.

    Attributes:
        status_code (int | None): HTTP status returned by the backend, if any.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class InvalidConfig(StoreError):
    """Remote mirroring was requested with a missing endpoint or key."""


class MalformedCacheData(StoreError):
    """A local cache blob could not be parsed. Treated as empty by readers."""

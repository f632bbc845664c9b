from enum import Enum

from pydantic import BaseModel


class StoreStatus(str, Enum):
    """Which source the store is currently serving from, for the connection indicator."""

    REMOTE_OK = "remote-ok"
    REMOTE_ERROR = "remote-error"
    LOCAL_ONLY = "local-only"


class ConnectionTestResult(BaseModel):
    """
    Outcome of an explicit, user-initiated connection test.

    Attributes:
        ok (bool): True if a real fetch against the remote mirror succeeded.
        message (str): Human readable outcome.
        fetched (int): Number of rows the test fetch returned.
    """

    ok: bool
    message: str
    fetched: int = 0

"""Pydantic models for the remote authentication session."""

from enum import Enum

from pydantic import BaseModel


class AuthEvent(str, Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"


class Identity(BaseModel):
    """The signed-in user as reported by the remote auth backend."""

    id: str
    email: str | None = None


class RemoteSession(BaseModel):
    """Tokens issued by the remote auth backend for the signed-in user.

    Persisted in the local cache so that a sign-in survives restarts.
    """

    access_token: str
    refresh_token: str | None = None
    user: Identity | None = None

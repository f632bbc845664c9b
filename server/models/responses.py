from pydantic import BaseModel

from shared.models.session import Identity
from shared.models.status import StoreStatus


class DocumentListResponse(BaseModel):
    documents: list[dict]
    total: int
    status: StoreStatus


class DeleteResponse(BaseModel):
    removed: int


class ImportResponse(BaseModel):
    imported: int
    documents: list[dict]


class RemoteStatusResponse(BaseModel):
    enabled: bool
    status: StoreStatus
    endpoint: str | None = None
    user: Identity | None = None


class SessionResponse(BaseModel):
    signed_in: bool
    user: Identity | None = None
    status: StoreStatus

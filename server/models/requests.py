from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class DeleteRequest(BaseModel):
    ids: list[str]


class ImportRequest(BaseModel):
    """Rows of a parsed import file, each a mapping of column header to cell value."""

    rows: list[dict[str, Any]]


class RemoteConfigRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    endpoint: str = Field(default="", alias="url")
    key: str = Field(default="", alias="anonKey")


class CredentialsRequest(BaseModel):
    email: str
    password: str

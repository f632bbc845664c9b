"""Pydantic models for tracked documents.

Hierarchy:
  DocumentKind : forwarded or received paper trail entry.
  Document     : a single tracked record, as held in memory and in the local cache.
  DocumentDraft: an incoming record that may still lack an id (forms, imports).
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DocumentKind(str, Enum):
    FORWARD = "forward"
    RECEIVED = "received"


TEXT_FIELDS = ("dts_no", "from_office", "details", "received_by", "to_office", "date")


class DocumentDraft(BaseModel):
    """A record as submitted by a form or an import, before an id is guaranteed.

    Field names are snake_case in Python; the camelCase aliases are the keys
    used in the cached JSON blob and by the UI.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str | None = None
    kind: DocumentKind = DocumentKind.FORWARD
    dts_no: str = Field(default="", alias="dtsNo")
    from_office: str = Field(default="", alias="fromOffice")
    details: str = ""
    received_by: str = Field(default="", alias="receivedBy")
    to_office: str = Field(default="", alias="toOffice")
    date: str = ""
    user_id: str | None = Field(default=None, alias="userId")

    @field_validator(*TEXT_FIELDS, mode="before")
    @classmethod
    def _coerce_text(cls, value):
        # cached blobs written by older versions may carry null or numbers here
        if value is None:
            return ""
        return value if isinstance(value, str) else str(value)

    @field_validator("user_id", mode="before")
    @classmethod
    def _coerce_user_id(cls, value):
        if value is None or value == "":
            return None
        return value if isinstance(value, str) else str(value)

    def to_cache(self) -> dict:
        """Serialize using the cache/UI key names, keeping unknown legacy keys."""
        return self.model_dump(mode="json", by_alias=True)


class Document(DocumentDraft):
    """A tracked record. The id is mandatory and never changes once assigned."""

    id: str = Field(min_length=1)

    def search_text(self) -> str:
        """Lowercased haystack used by free-text filtering."""
        values = [self.dts_no, self.from_office, self.details, self.received_by, self.to_office, self.date]
        return " | ".join(v.lower() for v in values)

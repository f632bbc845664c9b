"""Row shape of the remote documents table.

The mapping to and from Document is a fixed field rename; no value changes
except that an empty date is sent as null and read back as "".
"""

from pydantic import BaseModel, field_validator

from shared.models.document import Document, DocumentKind


class DocumentRow(BaseModel):
    """
    A single row of the remote documents table.
    """
    id: str
    kind: DocumentKind
    dts_no: str = ""
    from_office: str = ""
    details: str = ""
    received_by: str = ""
    to_office: str = ""
    doc_date: str | None = None
    user_id: str | None = None

    @field_validator("dts_no", "from_office", "details", "received_by", "to_office", mode="before")
    @classmethod
    def _null_to_empty(cls, value):
        return "" if value is None else value

    @classmethod
    def from_document(cls, doc: Document, user_id: str | None = None) -> "DocumentRow":
        """
        Builds the row for a document.

        Args:
            doc (Document): The document to send.
            user_id (str | None): Owner to stamp on the row. Falls back to doc.user_id.
        """
        return cls(
            id=doc.id,
            kind=doc.kind,
            dts_no=doc.dts_no or "",
            from_office=doc.from_office or "",
            details=doc.details or "",
            received_by=doc.received_by or "",
            to_office=doc.to_office or "",
            doc_date=doc.date or None,
            user_id=user_id or doc.user_id or None,
        )

    def to_document(self) -> Document:
        return Document(
            id=self.id,
            kind=self.kind,
            dts_no=self.dts_no or "",
            from_office=self.from_office or "",
            details=self.details or "",
            received_by=self.received_by or "",
            to_office=self.to_office or "",
            date=self.doc_date or "",
            user_id=self.user_id or None,
        )

    def to_payload(self) -> dict:
        return self.model_dump(mode="json")

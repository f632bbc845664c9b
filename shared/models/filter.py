"""Filter criteria for listing documents."""

from pydantic import BaseModel

from shared.models.document import Document, DocumentKind


class DocumentFilter(BaseModel):
    """
    Criteria used by the tracking view to narrow the collection.

    An instance is callable, so it can be passed straight to
    DocumentStore.get_filtered() as the predicate.

    Attributes:
        kind (DocumentKind | None): Only documents of this kind. None matches both kinds.
        query (str): Case-insensitive substring searched across all text fields.
        date (str): Exact date match. Empty matches any date.
    """

    kind: DocumentKind | None = None
    query: str = ""
    date: str = ""

    def __call__(self, doc: Document) -> bool:
        return self.matches(doc)

    def matches(self, doc: Document) -> bool:
        if self.kind is not None and doc.kind != self.kind:
            return False
        q = self.query.lower()
        if q and q not in doc.search_text():
            return False
        if self.date and doc.date != self.date:
            return False
        return True

"""Tests for document filtering."""

import pytest

from shared.models.document import Document, DocumentKind
from shared.models.filter import DocumentFilter

DOCS = [
    Document(id="1", kind=DocumentKind.FORWARD, dts_no="F-100", from_office="Registry", details="Budget memo", date="2024-01-10"),
    Document(id="2", kind=DocumentKind.RECEIVED, dts_no="R-7", received_by="Ana Cruz", details="Leave form", date="2024-01-11"),
    Document(id="3", kind=DocumentKind.FORWARD, to_office="HR", details="Payroll", date="2024-01-11"),
]


def _ids(f: DocumentFilter) -> list[str]:
    return [d.id for d in DOCS if f(d)]


class TestDocumentFilter:
    def test_empty_filter_matches_all(self):
        assert _ids(DocumentFilter()) == ["1", "2", "3"]

    def test_kind(self):
        assert _ids(DocumentFilter(kind=DocumentKind.RECEIVED)) == ["2"]

    @pytest.mark.parametrize("query, expected", [("budget", ["1"]), ("ANA", ["2"]), ("hr", ["3"]), ("r-7", ["2"]), ("2024-01-11", ["2", "3"])])
    def test_query_searches_all_text_fields(self, query, expected):
        assert _ids(DocumentFilter(query=query)) == expected

    def test_date_is_exact(self):
        assert _ids(DocumentFilter(date="2024-01-11")) == ["2", "3"]
        assert _ids(DocumentFilter(date="2024-01")) == []

    def test_criteria_combine(self):
        assert _ids(DocumentFilter(kind=DocumentKind.FORWARD, date="2024-01-11", query="pay")) == ["3"]

    def test_search_text_joins_lowercased_fields(self):
        assert DOCS[0].search_text() == "f-100 | registry | budget memo |  |  | 2024-01-10"

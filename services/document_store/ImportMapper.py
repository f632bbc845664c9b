"""Maps pre-parsed import rows onto document records.

The delimited-text parsing happens elsewhere; rows arrive here as mappings of
column header to cell value. Both the current export headers and the older
column names are accepted.
"""

import re
from typing import Any, Iterable, Mapping

from shared.models.document import DocumentDraft, DocumentKind

COLUMN_ALIASES: dict[str, list[str]] = {
    "id": ["id"],
    "kind": ["kind", "type"],
    "dts_no": ["dtsno", "dts no", "dts tracking no", "tracking no", "tracking"],
    "from_office": ["fromoffice", "from/office", "from", "office from"],
    "details": ["details", "document details", "document", "desc", "description"],
    "received_by": ["receivedby", "received by"],
    "to_office": ["tooffice", "to/office", "to", "office to"],
    "date": ["date", "dateforwarded", "date forwarded", "date received"],
}

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_SLASH_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")


def normalize_date(value: str) -> str:
    """
    Best-effort conversion of an imported date to YYYY-MM-DD.

    M/D/YYYY is the default reading of a slash date; it is read as D/M/YYYY only
    when the first component cannot be a month. Unknown formats are returned unchanged.
    """
    t = (value or "").strip()
    if not t or _ISO_DATE.match(t):
        return t
    m = _SLASH_DATE.match(t)
    if not m:
        return t
    first, second, year = m.groups()
    if int(first) > 12:
        return f"{year}-{second.zfill(2)}-{first.zfill(2)}"
    return f"{year}-{first.zfill(2)}-{second.zfill(2)}"


def _resolve_columns(headers: Iterable[str]) -> dict[str, str | None]:
    lookup = {str(h or "").strip().lower(): h for h in headers}
    resolved: dict[str, str | None] = {}
    for field, aliases in COLUMN_ALIASES.items():
        resolved[field] = next((lookup[a] for a in aliases if a in lookup), None)
    return resolved


def _cell(row: Mapping[str, Any], column: str | None) -> str:
    if column is None:
        return ""
    value = row.get(column)
    return "" if value is None else str(value).strip()


def map_rows(rows: Iterable[Mapping[str, Any]]) -> list[DocumentDraft]:
    """
    Converts imported rows into document drafts.

    Rows that are entirely blank, or that carry neither a DTS number nor details,
    are skipped. Ids are taken over as given; collision handling is left to
    DocumentStore.bulk_add().

    Args:
        rows (Iterable[Mapping[str, Any]]): Header-to-value mappings, one per data row.

    Returns:
        list[DocumentDraft]: The importable records, in input order.
    """
    drafts: list[DocumentDraft] = []
    columns: dict[str, str | None] | None = None
    for row in rows:
        if columns is None:
            columns = _resolve_columns(row.keys())
        if all(str(v if v is not None else "").strip() == "" for v in row.values()):
            continue

        dts_no = _cell(row, columns["dts_no"])
        details = _cell(row, columns["details"])
        if not dts_no and not details:
            continue

        kind_raw = (_cell(row, columns["kind"]) or DocumentKind.FORWARD.value).lower()
        drafts.append(
            DocumentDraft(
                id=_cell(row, columns["id"]) or None,
                kind=DocumentKind.RECEIVED if kind_raw == DocumentKind.RECEIVED.value else DocumentKind.FORWARD,
                dts_no=dts_no,
                from_office=_cell(row, columns["from_office"]),
                details=details,
                received_by=_cell(row, columns["received_by"]),
                to_office=_cell(row, columns["to_office"]),
                date=normalize_date(_cell(row, columns["date"])),
            )
        )
    return drafts

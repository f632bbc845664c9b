"""Migration of legacy and partial cached records into the current schema.

Every read from the local cache goes through here. Rules, per record, in order:

1. missing id (or an id already used earlier in the same set) -> fresh id
2. missing kind -> "forward"; a legacy dateForwarded fills an empty date
3. kind "received" with an empty date -> a legacy dateReceived fills it
4. kind "received" -> dtsNo and toOffice default to ""

A record that still fails validation afterwards is dropped with a warning.

If any record was altered the normalized set is written straight back to the
cache, so the migration heals the stored data once and is a no-op afterwards.
"""

from typing import Any, Callable, Iterable

from pydantic import ValidationError

from shared.cache.LocalCache import LocalCache
from shared.helper.HelperConfig import HelperConfig
from shared.helper.IdentityGenerator import new_id
from shared.models.document import Document, DocumentKind

_KINDS = {k.value for k in DocumentKind}


class RecordNormalizer:
    def __init__(self, helper_config: HelperConfig, cache: LocalCache, id_factory: Callable[[], str] = new_id) -> None:
        self.logging = helper_config.get_logger()
        self._cache = cache
        self._new_id = id_factory

    def normalize(self, raw: Iterable[Any]) -> list[Document]:
        """
        Normalizes raw cached records and self-heals the cache if anything changed.

        Args:
            raw (Iterable[Any]): Records as read from the local cache.

        Returns:
            list[Document]: The normalized collection, in input order.
        """
        docs, changed = self.migrate(raw)
        if changed:
            self.logging.info("Migrated legacy records in local cache (%d document(s)).", len(docs))
            self._cache.write_all(docs)
        return docs

    def migrate(self, raw: Iterable[Any]) -> tuple[list[Document], bool]:
        """
        Pure part of normalize(): applies the migration rules without touching the cache.

        Returns:
            tuple[list[Document], bool]: The normalized documents and whether any input was altered.
        """
        items = list(raw or [])
        # fresh ids must not collide with any id present anywhere in the input
        reserved = {str(i["id"]) for i in items if isinstance(i, dict) and i.get("id")}
        changed = False
        seen: set[str] = set()
        out: list[Document] = []
        for item in items:
            if not isinstance(item, dict):
                self.logging.warning("Dropping non-record entry from local cache: %r", item)
                changed = True
                continue
            record, altered = self._migrate_record(item, seen, reserved)
            try:
                doc = Document.model_validate(record)
            except ValidationError as e:
                self.logging.warning("Dropping unreadable record %s from local cache: %s", record["id"], e)
                changed = True
                continue
            seen.add(doc.id)
            reserved.add(doc.id)
            out.append(doc)
            changed = changed or altered
        return out, changed

    def _migrate_record(self, item: dict, seen: set[str], reserved: set[str]) -> tuple[dict, bool]:
        nd = dict(item)
        altered = False

        if nd.get("id") and not isinstance(nd["id"], str):
            nd["id"] = str(nd["id"])
            altered = True
        if not nd.get("id") or nd["id"] in seen:
            nd["id"] = self._unique_id(reserved)
            altered = True

        if not nd.get("kind"):
            # records written before kinds existed were all forwarded documents
            nd["kind"] = DocumentKind.FORWARD.value
            if nd.get("dateForwarded") and not nd.get("date"):
                nd["date"] = nd["dateForwarded"]
            altered = True
        elif not isinstance(nd["kind"], str) or nd["kind"] not in _KINDS:
            self.logging.warning("Record %s has unknown kind %r, treating it as forward.", nd["id"], nd["kind"])
            nd["kind"] = DocumentKind.FORWARD.value
            altered = True

        if nd["kind"] == DocumentKind.RECEIVED.value:
            if not nd.get("date") and nd.get("dateReceived"):
                nd["date"] = nd["dateReceived"]
                altered = True
            for key in ("dtsNo", "toOffice"):
                if not nd.get(key):
                    nd[key] = ""

        return nd, altered

    def _unique_id(self, taken: set[str]) -> str:
        candidate = self._new_id()
        while candidate in taken:
            candidate = self._new_id()
        return candidate

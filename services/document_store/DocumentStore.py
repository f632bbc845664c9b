"""Document store.

Holds the authoritative in-memory collection and keeps it consistent with the
durable local cache and, when configured and signed in, the remote mirror.

Every mutation is a durable local commit (memory + cache, no awaits in
between) followed by a best-effort remote relay that runs as a background
task. A failed relay is logged and never rolled back or retried, so local and
remote can drift until the next successful load.
"""

import asyncio
from typing import Any, Awaitable, Callable, Iterable, Mapping

from services.document_store.ImportMapper import map_rows
from shared.cache.LocalCache import LocalCache
from shared.cache.RecordNormalizer import RecordNormalizer
from shared.clients.remote.RemoteClientInterface import RemoteClientInterface
from shared.clients.remote.RemoteClientManager import RemoteClientManager
from shared.clients.remote.SessionTracker import SessionTracker
from shared.errors import InvalidConfig, NotAuthenticated, RemoteUnavailable
from shared.helper.HelperConfig import HelperConfig
from shared.helper.IdentityGenerator import new_id
from shared.logging.logging_setup import STATUS_COLORS
from shared.models.config import RemoteConfig
from shared.models.document import Document, DocumentDraft
from shared.models.session import AuthEvent, Identity
from shared.models.status import ConnectionTestResult, StoreStatus

StatusListener = Callable[[StoreStatus], None]
RecordLike = Document | DocumentDraft | Mapping[str, Any]


class DocumentStore:
    """Orchestrates the in-memory collection, the local cache and the remote mirror."""

    def __init__(
        self,
        helper_config: HelperConfig,
        cache: LocalCache,
        remote_manager: RemoteClientManager,
        id_factory: Callable[[], str] = new_id,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._cache = cache
        self._remote = remote_manager
        self._new_id = id_factory
        self._normalizer = RecordNormalizer(helper_config=helper_config, cache=cache, id_factory=id_factory)

        self._docs: list[Document] = []
        self._status = StoreStatus.LOCAL_ONLY
        self._status_listeners: list[StatusListener] = []
        self._load_seq = 0
        self._relays: set[asyncio.Task] = set()
        self._auth_tracker: SessionTracker | None = None
        self._unsubscribe_auth: Callable[[], None] | None = None

    ##########################################
    ################ LIFECYCLE ###############
    ##########################################

    async def boot(self) -> list[Document]:
        """Connects the remote mirror from the saved configuration and loads the collection."""
        await self._init_remote()
        return await self.load()

    async def close(self) -> None:
        """Waits for pending remote relays, then closes the remote client."""
        await self.flush()
        self._detach_auth_listener()
        await self._remote.teardown()

    async def flush(self) -> None:
        """Waits until every pending best-effort remote relay has finished."""
        while self._relays:
            await asyncio.gather(*list(self._relays), return_exceptions=True)

    ##########################################
    ################ READING #################
    ##########################################

    def get_all(self) -> list[Document]:
        return list(self._docs)

    def get_filtered(self, predicate: Callable[[Document], bool]) -> list[Document]:
        return [d for d in self._docs if predicate(d)]

    def get(self, document_id: str) -> Document | None:
        return next((d for d in self._docs if d.id == document_id), None)

    ##########################################
    ################ STATUS ##################
    ##########################################

    @property
    def status(self) -> StoreStatus:
        return self._status

    def subscribe_status(self, listener: StatusListener) -> Callable[[], None]:
        """
        Registers a listener called with the new status after each load or configuration change.

        Returns:
            Callable[[], None]: Removes the listener again.
        """
        self._status_listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._status_listeners:
                self._status_listeners.remove(listener)

        return unsubscribe

    def _set_status(self, status: StoreStatus) -> None:
        if status != self._status:
            self.logging.info("Store status: %s", status.value, extra={"color": STATUS_COLORS.get(status.value)})
        self._status = status
        for listener in list(self._status_listeners):
            try:
                listener(status)
            except Exception as e:
                self.logging.error("Status listener failed: %s", e)

    def is_remote_enabled(self) -> bool:
        """Remote mirroring is enabled while a complete remote configuration has a live client."""
        return self._remote.get_client() is not None

    ##########################################
    ############# REMOTE WIRING ##############
    ##########################################

    async def _init_remote(self) -> RemoteClientInterface | None:
        client = await self._remote.init(self._cache.read_config())
        self._attach_auth_listener()
        return client

    def _attach_auth_listener(self) -> None:
        """Keeps exactly one auth subscription, on the tracker of the live client."""
        tracker = self._remote.get_tracker()
        if tracker is self._auth_tracker:
            return
        self._detach_auth_listener()
        if tracker is not None:
            self._unsubscribe_auth = tracker.subscribe(self._on_auth_transition)
            self._auth_tracker = tracker

    def _detach_auth_listener(self) -> None:
        if self._unsubscribe_auth is not None:
            self._unsubscribe_auth()
        self._unsubscribe_auth = None
        self._auth_tracker = None

    async def _on_auth_transition(self, event: AuthEvent, user: Identity | None) -> None:
        if event == AuthEvent.SIGNED_IN:
            await self.load()
        elif event == AuthEvent.SIGNED_OUT:
            # supersede any in-flight load; the cache is kept
            self._load_seq += 1
            self._docs = []
            self._set_status(StoreStatus.LOCAL_ONLY)

    ##########################################
    ################# LOAD ###################
    ##########################################

    async def load(self) -> list[Document]:
        """
        Loads the collection, preferring the remote mirror when it is enabled and signed in.

        A remote fetch failure is logged and reported as REMOTE_ERROR; the local cache
        is then used. A result that arrives after a newer load started is discarded.

        Returns:
            list[Document]: The collection after loading.
        """
        await self._init_remote()
        tracker = self._remote.get_tracker()
        # resolved before taking a token: an expired session emits SIGNED_OUT here,
        # which supersedes older loads but must not supersede this one
        user = await tracker.current_user() if tracker is not None else None

        self._load_seq += 1
        token = self._load_seq
        remote_failed = False

        if tracker is not None:
            if user is not None:
                try:
                    fetched = await tracker.get_client().do_fetch_all()
                except Exception as e:
                    if token != self._load_seq:
                        return self.get_all()
                    self.logging.warning("Remote load failed, using local cache. %s", e)
                    remote_failed = True
                else:
                    if token != self._load_seq:
                        self.logging.debug("Discarding superseded remote result of load #%d.", token)
                        return self.get_all()
                    docs, _ = self._normalizer.migrate(d.to_cache() for d in fetched)
                    self._commit(docs)
                    self._set_status(StoreStatus.REMOTE_OK)
                    return self.get_all()
            else:
                self.logging.info("Remote mirroring is configured but nobody is signed in; using local cache.")

        docs = self._normalizer.normalize(self._cache.read_all())
        if token != self._load_seq:
            return self.get_all()
        self._commit(docs)
        self._set_status(StoreStatus.REMOTE_ERROR if remote_failed else StoreStatus.LOCAL_ONLY)
        return self.get_all()

    ##########################################
    ############### MUTATIONS ################
    ##########################################

    def _commit(self, docs: list[Document]) -> None:
        """Durable local commit: the in-memory collection and the cache are replaced together."""
        self._docs = docs
        self._cache.write_all(self._docs)

    def _commit_mutation(self, docs: list[Document]) -> None:
        # an in-flight load fetched its result before this change; supersede it
        self._load_seq += 1
        self._commit(docs)

    def _unique_id(self, taken: set[str]) -> str:
        candidate = self._new_id()
        while candidate in taken:
            candidate = self._new_id()
        return candidate

    def _to_document(self, record: RecordLike, taken: set[str]) -> Document:
        """Builds a Document, assigning a fresh id if the record has none or its id is taken."""
        if isinstance(record, DocumentDraft):
            data = record.model_dump(by_alias=True)
        else:
            data = dict(record)
        if not data.get("id") or data["id"] in taken:
            data["id"] = self._unique_id(taken)
        return Document.model_validate(data)

    async def add(self, record: RecordLike) -> Document:
        """
        Adds a record at the top of the collection.

        Returns:
            Document: The stored document, with its id.
        """
        doc = self._to_document(record, {d.id for d in self._docs})
        self._commit_mutation([doc, *self._docs])
        self._relay("insert", lambda client: client.do_insert(doc))
        return doc

    async def update(self, record: RecordLike) -> Document:
        """
        Replaces the document with the same id in place. Fields are replaced wholesale.

        Raises:
            KeyError: If no document has the record's id.
        """
        data = record.model_dump(by_alias=True) if isinstance(record, DocumentDraft) else dict(record)
        doc = Document.model_validate(data)
        index = next((i for i, d in enumerate(self._docs) if d.id == doc.id), None)
        if index is None:
            raise KeyError(doc.id)
        docs = list(self._docs)
        docs[index] = doc
        self._commit_mutation(docs)
        self._relay("update", lambda client: client.do_update(doc))
        return doc

    async def delete_many(self, document_ids: Iterable[str]) -> int:
        """
        Removes all documents with the given ids.

        Returns:
            int: Number of documents removed locally.
        """
        ids = list(dict.fromkeys(document_ids))
        idset = set(ids)
        kept = [d for d in self._docs if d.id not in idset]
        removed = len(self._docs) - len(kept)
        self._commit_mutation(kept)
        self._relay("delete", lambda client: client.do_delete(ids))
        return removed

    async def delete_one(self, document_id: str) -> int:
        return await self.delete_many([document_id])

    async def bulk_add(self, records: Iterable[RecordLike]) -> list[Document]:
        """
        Adds a batch of records ahead of the existing collection.

        Records without an id, or whose id is already used by the collection or an
        earlier record of the batch, get a fresh id. The batch is prepended in
        reverse, so the last record of the batch ends up on top.

        Returns:
            list[Document]: The added documents, in input order.
        """
        taken = {d.id for d in self._docs}
        added: list[Document] = []
        for record in records:
            doc = self._to_document(record, taken)
            taken.add(doc.id)
            added.append(doc)
        if not added:
            return []
        self._commit_mutation([*reversed(added), *self._docs])
        self._relay("bulk insert", lambda client: client.do_insert_many(added))
        self.logging.info("Added %d document(s) in bulk.", len(added))
        return added

    async def import_rows(self, rows: Iterable[Mapping[str, Any]]) -> list[Document]:
        """
        Imports pre-parsed rows (column header -> value) via bulk_add().

        Raises:
            ValueError: If no row yields a valid record.
        """
        drafts = map_rows(rows)
        if not drafts:
            raise ValueError("No valid records found")
        return await self.bulk_add(drafts)

    ##########################################
    ############# REMOTE RELAY ###############
    ##########################################

    def _relay(self, action: str, op: Callable[[RemoteClientInterface], Awaitable[None]]) -> None:
        """Schedules a best-effort remote write. Does nothing while remote mirroring is disabled."""
        tracker = self._remote.get_tracker()
        if tracker is None:
            return
        task = asyncio.create_task(self._run_relay(action, tracker, op))
        self._relays.add(task)
        task.add_done_callback(self._relays.discard)

    async def _run_relay(self, action: str, tracker: SessionTracker, op: Callable[[RemoteClientInterface], Awaitable[None]]) -> None:
        user = await tracker.current_user()
        if user is None:
            self.logging.debug("Signed out; remote %s skipped.", action)
            return
        try:
            await op(tracker.get_client())
        except Exception as e:
            self.logging.warning("Remote %s failed; kept in local cache. %s", action, e)

    ##########################################
    ########## REMOTE CONFIGURATION ##########
    ##########################################

    def get_config(self) -> RemoteConfig | None:
        return self._cache.read_config()

    async def set_config(self, config: RemoteConfig) -> list[Document]:
        """
        Saves the remote configuration, connects the mirror and reloads.

        Raises:
            InvalidConfig: If the endpoint or key is missing.
        """
        config = config.stripped()
        if not config.is_complete():
            raise InvalidConfig("Please provide both the remote endpoint and key.")
        self._cache.write_config(config)
        return await self.load()

    async def clear_config(self, purge: bool = False) -> list[Document]:
        """
        Disables remote mirroring and reloads from the local cache.

        Args:
            purge (bool): Also delete the cached collection.
        """
        self._cache.clear_config()
        self._cache.clear_session()
        if purge:
            self._cache.purge()
        self._detach_auth_listener()
        await self._remote.teardown()
        return await self.load()

    async def test_connection(self, config: RemoteConfig | None = None) -> ConnectionTestResult:
        """
        Performs a real fetch against the remote mirror without touching the collection.

        Args:
            config (RemoteConfig | None): Settings to save and test. None tests the saved settings.

        Raises:
            InvalidConfig: If no complete configuration is available.
            NotAuthenticated: If nobody is signed in.
        """
        if config is not None:
            config = config.stripped()
            if not config.is_complete():
                self._set_status(StoreStatus.LOCAL_ONLY)
                raise InvalidConfig("Please provide both the remote endpoint and key.")
            self._cache.write_config(config)
        await self._init_remote()
        tracker = self._remote.get_tracker()
        if tracker is None:
            raise InvalidConfig("Remote mirroring is not configured.")
        if await tracker.current_user() is None:
            raise NotAuthenticated("Sign in to test the remote connection.")
        try:
            fetched = await tracker.get_client().do_fetch_all()
        except RemoteUnavailable as e:
            self.logging.warning("Remote connection test failed: %s", e)
            self._set_status(StoreStatus.REMOTE_ERROR)
            return ConnectionTestResult(ok=False, message=f"Connection failed: {e}")
        self._set_status(StoreStatus.REMOTE_OK)
        return ConnectionTestResult(ok=True, message="Connected successfully.", fetched=len(fetched))

    ##########################################
    ################ SESSION #################
    ##########################################

    def _require_tracker(self) -> SessionTracker:
        tracker = self._remote.get_tracker()
        if tracker is None:
            raise InvalidConfig("Remote mirroring is not configured.")
        return tracker

    async def current_user(self) -> Identity | None:
        tracker = self._remote.get_tracker()
        return await tracker.current_user() if tracker is not None else None

    async def sign_in(self, email: str, password: str) -> Identity | None:
        await self._init_remote()
        return await self._require_tracker().sign_in(email, password)

    async def sign_up(self, email: str, password: str) -> Identity | None:
        await self._init_remote()
        return await self._require_tracker().sign_up(email, password)

    async def sign_out(self, clear_cache: bool = False) -> None:
        """
        Signs out of the remote mirror. The in-memory collection is cleared when a
        session existed or the cache is purged; the cache is only purged when
        clear_cache is set.
        """
        tracker = self._remote.get_tracker()
        if tracker is not None:
            await tracker.sign_out()
        if clear_cache:
            self._load_seq += 1
            self._cache.purge()
        if tracker is not None or clear_cache:
            self._docs = []
        self._set_status(StoreStatus.LOCAL_ONLY)

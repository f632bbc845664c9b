"""Durable local cache.

Stores the full document collection as one serialized JSON blob, plus
separate blobs for the remote connection settings and the remote session.
Each key is a file in the cache directory; writes replace the file atomically.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Iterable

from pydantic import BaseModel, ValidationError

from shared.errors import MalformedCacheData
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import RemoteConfig
from shared.models.session import RemoteSession

DOCUMENTS_KEY = "outgoingDocs"
CONFIG_KEY = "dts_cloud_cfg"
SESSION_KEY = "dts_session"


class LocalCache:
    """Directory-backed key/value store for the document collection and settings."""

    def __init__(self, helper_config: HelperConfig, cache_dir: Path | None = None) -> None:
        self.logging = helper_config.get_logger()
        self._dir = Path(cache_dir) if cache_dir is not None else helper_config.get_cache_dir()
        self._dir.mkdir(parents=True, exist_ok=True)

    @property
    def directory(self) -> Path:
        return self._dir

    ##########################################
    ############### RAW BLOBS ################
    ##########################################

    def _path(self, key: str) -> Path:
        return self._dir / f"{key}.json"

    def _read_blob(self, key: str) -> Any:
        """Parse the blob stored under key.

        Returns:
            Any: The decoded JSON value, or None if the key is missing.

        Raises:
            MalformedCacheData: If the blob exists but is not valid JSON.
        """
        path = self._path(key)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise MalformedCacheData(f"Cache blob '{key}' is not valid JSON: {e}") from e

    def _write_blob(self, key: str, value: Any) -> None:
        path = self._path(key)
        fd, tmp = tempfile.mkstemp(dir=self._dir, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(value, f, ensure_ascii=False)
            os.replace(tmp, path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def _remove_blob(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    ##########################################
    ############### DOCUMENTS ################
    ##########################################

    def read_all(self) -> list[dict]:
        """
        Returns the raw cached document records.

        Returns:
            list[dict]: The stored records, or an empty list if nothing is stored
            or the blob is unparsable. Never raises.
        """
        try:
            data = self._read_blob(DOCUMENTS_KEY)
        except MalformedCacheData as e:
            self.logging.warning("%s Treating the local collection as empty.", e)
            return []
        if data is None:
            return []
        if not isinstance(data, list):
            self.logging.warning("Cache blob '%s' is not a list (%s). Treating the local collection as empty.", DOCUMENTS_KEY, type(data).__name__)
            return []
        return data

    def write_all(self, docs: Iterable[BaseModel | dict]) -> None:
        """
        Persists the full collection, replacing any prior content.

        Args:
            docs (Iterable[BaseModel | dict]): Document models (dumped by alias) or raw records.
        """
        payload = [d.model_dump(mode="json", by_alias=True) if isinstance(d, BaseModel) else d for d in docs]
        self._write_blob(DOCUMENTS_KEY, payload)
        self.logging.debug("Wrote %d document(s) to local cache at %s", len(payload), self._dir)

    def purge(self) -> None:
        """Remove the cached collection. Only explicit purge/clear actions call this."""
        self._remove_blob(DOCUMENTS_KEY)
        self.logging.info("Local document cache purged.")

    ##########################################
    ############ REMOTE SETTINGS #############
    ##########################################

    def read_config(self) -> RemoteConfig | None:
        try:
            data = self._read_blob(CONFIG_KEY)
            return RemoteConfig.model_validate(data) if data is not None else None
        except (MalformedCacheData, ValidationError) as e:
            self.logging.warning("Ignoring unreadable remote config blob: %s", e)
            return None

    def write_config(self, config: RemoteConfig) -> None:
        self._write_blob(CONFIG_KEY, config.model_dump(by_alias=True))

    def clear_config(self) -> None:
        self._remove_blob(CONFIG_KEY)

    def read_session(self) -> RemoteSession | None:
        try:
            data = self._read_blob(SESSION_KEY)
            return RemoteSession.model_validate(data) if data is not None else None
        except (MalformedCacheData, ValidationError) as e:
            self.logging.warning("Ignoring unreadable session blob: %s", e)
            return None

    def write_session(self, session: RemoteSession) -> None:
        self._write_blob(SESSION_KEY, session.model_dump(mode="json"))

    def clear_session(self) -> None:
        self._remove_blob(SESSION_KEY)

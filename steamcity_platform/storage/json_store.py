"""
Flat JSON file storage for SteamCity collections.

Each collection kind lives in its own JSON array file under the configured
data directory. Reads return a fresh snapshot per call and degrade to an
empty collection when the file is missing or corrupt; writes rewrite the
file atomically.
"""

import json
import logging
import os
import tempfile
import threading
import time
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from ..config import COLLECTION_KINDS, StorageConfig, get_config
from ..errors import (
    InvalidArgumentError, StorageError, create_error_context, handle_error
)
from ..logging_config import log_storage_operation

logger = logging.getLogger(__name__)

Record = Dict[str, Any]


class JSONStore:
    """Reads and writes collection files for one data directory."""

    def __init__(self, config: Optional[StorageConfig] = None):
        """Initialize the store with storage configuration."""
        self.config = config or get_config().storage
        self._write_lock = threading.Lock()

    @property
    def data_dir(self) -> Path:
        return Path(self.config.data_dir)

    def _path(self, kind: str) -> Path:
        if kind not in COLLECTION_KINDS:
            raise InvalidArgumentError(
                f"Unknown collection '{kind}'. Expected one of: {', '.join(COLLECTION_KINDS)}",
                parameter="kind"
            )
        return self.config.path_for(kind)

    def load(self, kind: str) -> List[Record]:
        """
        Load every record of a collection.

        Args:
            kind: Collection kind (clusters, protocols, experiments, sensors, measurements)

        Returns:
            A new list of records; empty when storage is missing or unreadable
        """
        path = self._path(kind)
        start = time.time()

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            handle_error(e, create_error_context(
                operation="load_collection",
                collection=kind,
                file_path=str(path)
            ))
            return []

        if not isinstance(data, list):
            handle_error(
                StorageError(f"Collection file {path} does not contain a JSON array"),
                create_error_context(operation="load_collection", collection=kind, file_path=str(path))
            )
            return []

        records = [record for record in data if isinstance(record, dict)]
        if len(records) != len(data):
            logger.warning(
                f"Skipped {len(data) - len(records)} non-object entries in {kind}",
                extra={"collection": kind, "file_path": str(path)}
            )

        log_storage_operation(logger, "LOAD", kind, count=len(records), duration=time.time() - start)
        return records

    def get_by_id(self, kind: str, record_id: Any) -> Optional[Record]:
        """
        Find the first record whose id matches.

        Ids are compared as strings so that a path parameter "2" finds
        cluster 2.
        """
        wanted = str(record_id)
        for record in self.load(kind):
            if str(record.get("id")) == wanted:
                return record
        return None

    def append(self, kind: str, records: Iterable[Record]) -> List[Record]:
        """
        Append records to a collection and persist it.

        Returns:
            The appended records
        """
        new_records = list(records)
        with self._write_lock:
            existing = self._load_for_update(kind)
            self._write(kind, existing + new_records)

        log_storage_operation(logger, "APPEND", kind, count=len(new_records))
        return new_records

    def _load_for_update(self, kind: str) -> List[Any]:
        """
        Read a collection that is about to be rewritten.

        A missing file is an empty collection. An unreadable file or one
        that is not a JSON array raises instead of falling back, so the
        rewrite never drops stored records.

        Raises:
            StorageError: If the file exists but cannot be read or parsed
        """
        path = self._path(kind)
        context = create_error_context(operation="append_collection", collection=kind, file_path=str(path))

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError:
            return []
        except (OSError, ValueError) as e:
            log_storage_operation(logger, "APPEND", kind, error=str(e))
            raise StorageError(
                f"Refusing to append to unreadable {kind} collection: {e}",
                context=context,
                original_exception=e
            )

        if not isinstance(data, list):
            log_storage_operation(logger, "APPEND", kind, error="not a JSON array")
            raise StorageError(
                f"Refusing to append to {kind} collection: {path} does not contain a JSON array",
                context=context
            )
        return data

    def replace(self, kind: str, records: Iterable[Record]) -> int:
        """Overwrite a collection. Returns the number of records written."""
        new_records = list(records)
        with self._write_lock:
            self._write(kind, new_records)

        log_storage_operation(logger, "REPLACE", kind, count=len(new_records))
        return len(new_records)

    def _write(self, kind: str, records: List[Record]) -> None:
        path = self._path(kind)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=str(path.parent), prefix=f".{kind}.", suffix=".tmp")
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    json.dump(records, f, indent=self.config.indent, ensure_ascii=False, default=str)
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            log_storage_operation(logger, "WRITE", kind, error=str(e))
            raise StorageError(
                f"Failed to write {kind} collection: {e}",
                context=create_error_context(operation="write_collection", collection=kind, file_path=str(path)),
                original_exception=e
            )

    def counts(self) -> Dict[str, int]:
        """Number of records per collection kind."""
        return {kind: len(self.load(kind)) for kind in COLLECTION_KINDS}


# Global store instance
_store: Optional[JSONStore] = None


def get_store() -> JSONStore:
    """Get the global store instance, built from the global configuration."""
    global _store
    if _store is None:
        _store = JSONStore(get_config().storage)
    return _store


def set_store(store: Optional[JSONStore]) -> None:
    """Set the global store instance."""
    global _store
    _store = store

"""
Application State - the client's in-memory snapshot of every collection,
plus the session and the current view.

Full pulls replace the collections wholesale. Local writes are applied
optimistically and tracked per record with a sync status until the backend
confirms them.
"""
from enum import Enum
from typing import Any, Dict, List, Optional
import copy
import logging
import threading

from ..core.ids import is_placeholder

logger = logging.getLogger(__name__)

COLLECTION_NAMES = ("patients", "visits", "studies", "templates", "users")

# collection -> (referencing collection, foreign key column)
REFERENCES = {
    "patients": [("visits", "patient_id")],
    "visits": [("studies", "visit_id")],
}


class SyncStatus(str, Enum):
    """
    Sync state of a locally written record.

    - PENDING: Applied locally, backend write not finished
    - COMMITTED: Backend confirmed the write
    - FAILED: Backend write failed; the record stays until the next full reload
    """
    PENDING = "pending"
    COMMITTED = "committed"
    FAILED = "failed"


class ApplicationState:
    """
    Snapshot of patients, visits, studies, templates and users.

    Reads and writes take a re-entrant lock, since background sync jobs
    reconcile ids from a worker thread.

    Attributes:
        user: Session user (staff row or synthesized patient session)
        current_view: Name of the page on screen
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._collections: Dict[str, List[Dict[str, Any]]] = {name: [] for name in COLLECTION_NAMES}
        self._sync: Dict[str, SyncStatus] = {}
        self._aliases: Dict[str, str] = {}
        self.user: Optional[Dict[str, Any]] = None
        self.current_view: Optional[str] = None
        self.loaded = False

    def __getattr__(self, name: str) -> List[Dict[str, Any]]:
        # state.patients, state.visits, ...
        if name in COLLECTION_NAMES:
            return self._collections[name]
        raise AttributeError(name)

    def collection(self, name: str) -> List[Dict[str, Any]]:
        return self._collections[name]

    def replace_all(self, data: Dict[str, Any]) -> None:
        """
        Replace every collection with a freshly pulled dataset.

        Local creates still waiting for the backend are carried over, since
        their write is queued and will be reconciled when it lands. Every
        other local record and sync status is dropped.
        """
        with self._lock:
            pending = {
                record_id: status for record_id, status in self._sync.items()
                if status is SyncStatus.PENDING and is_placeholder(record_id)
            }
            for name in COLLECTION_NAMES:
                carried = [r for r in self._collections[name] if r.get("id") in pending]
                self._collections[name] = list(data.get(name) or []) + carried
            self._sync = pending
            self.loaded = True
        if pending:
            logger.info(f"Kept {len(pending)} unsynced local records across reload")
        logger.info(
            "State replaced: " + ", ".join(f"{name}={len(self._collections[name])}" for name in COLLECTION_NAMES)
        )

    def resolve_id(self, record_id: str) -> str:
        """
        Follow placeholder -> server id aliases.
        """
        with self._lock:
            return self._aliases.get(record_id, record_id)

    def find(self, collection: str, record_id: Optional[str]) -> Optional[Dict[str, Any]]:
        if not record_id:
            return None
        with self._lock:
            wanted = self._aliases.get(record_id, record_id)
            for record in self._collections[collection]:
                if record.get("id") == wanted:
                    return record
        return None

    def add(self, collection: str, record: Dict[str, Any], status: SyncStatus = SyncStatus.PENDING) -> Dict[str, Any]:
        """
        Append a locally created record and mark it pending.
        """
        with self._lock:
            self._collections[collection].append(record)
            self._sync[record["id"]] = status
        return record

    def update(self, collection: str, record_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Overwrite named fields of a record and mark it pending.

        Returns:
            The updated record, or None if it is not in state
        """
        with self._lock:
            record = self.find(collection, record_id)
            if record is None:
                return None
            record.update(fields)
            self._sync[record["id"]] = SyncStatus.PENDING
            return record

    def reconcile_id(self, collection: str, placeholder: str, server_id: str) -> None:
        """
        Swap a placeholder id for the id the backend assigned, rewriting
        every reference to it, and mark the record committed.

        When a reload already brought in the server row, the local copy is
        dropped instead of renamed.
        """
        with self._lock:
            self._aliases[placeholder] = server_id
            records = self._collections[collection]
            if any(record.get("id") == server_id for record in records):
                self._collections[collection] = [r for r in records if r.get("id") != placeholder]
            else:
                for record in records:
                    if record.get("id") == placeholder:
                        record["id"] = server_id
            for child, column in REFERENCES.get(collection, []):
                for record in self._collections[child]:
                    if record.get(column) == placeholder:
                        record[column] = server_id
            self._sync.pop(placeholder, None)
            self._sync[server_id] = SyncStatus.COMMITTED
        logger.info(f"Reconciled {collection} id {placeholder} -> {server_id}")

    def mark(self, record_id: str, status: SyncStatus) -> None:
        with self._lock:
            self._sync[self._aliases.get(record_id, record_id)] = status

    def sync_status(self, record_id: str) -> Optional[SyncStatus]:
        """
        Get the sync status of a local write; None for records straight
        from a full pull.
        """
        with self._lock:
            return self._sync.get(self._aliases.get(record_id, record_id))

    def snapshot(self) -> Dict[str, List[Dict[str, Any]]]:
        with self._lock:
            return copy.deepcopy(self._collections)

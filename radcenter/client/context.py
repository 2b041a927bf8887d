"""
Application context - the object every view controller works through.

It owns the application state, the API client, the access policy, the user
interface, durable storage, the background sync queue and the router. There
is no module-level instance: build one with `create_context`.
"""
from concurrent.futures import Future
from typing import Any, Callable, Dict, Optional
import logging
import threading

from ..config import settings
from ..core.permissions import AccessPolicy, Action, policy as default_policy
from .api import ApiClient
from .auth import Auth
from .exceptions import ClientError, PermissionDeniedError
from .router import Router
from .state import ApplicationState, SyncStatus
from .storage import BACKEND_URL_KEY, LocalStorage
from .sync import BackgroundSync
from .templates import TemplateLibrary
from .ui import HeadlessUI, UserInterface

logger = logging.getLogger(__name__)

# collection -> ApiClient create method
CREATE_CALLS = {
    "patients": "create_patient",
    "visits": "create_visit",
    "studies": "create_study",
    "users": "create_user",
}

# collection -> columns holding ids of other records
FOREIGN_KEYS = {
    "visits": ("patient_id",),
    "studies": ("visit_id",),
}


class AppContext:
    """
    Explicit application context.

    Attributes:
        state: Application state
        api: Backend client
        policy: Page and action access policy
        ui: Screen collaborator
        storage: Durable client storage
        sync: Background write queue
        router: Navigation guard
        auth: Session management
        templates: Report template library
        views: Page -> view controller
    """

    def __init__(
        self,
        api: ApiClient,
        ui: UserInterface,
        storage: Optional[LocalStorage] = None,
        state: Optional[ApplicationState] = None,
        policy: Optional[AccessPolicy] = None,
        sync: Optional[BackgroundSync] = None,
        poll_interval: Optional[float] = None,
    ):
        from ..views import build_views

        self.api = api
        self.ui = ui
        self.storage = storage or LocalStorage()
        self.state = state or ApplicationState()
        self.policy = policy or default_policy
        self.sync = sync or BackgroundSync()
        self.poll_interval = poll_interval or settings.poll_interval_seconds
        self.router = Router(self)
        self.auth = Auth(self)
        self.templates = TemplateLibrary()
        self.views = build_views(self)
        self._poll_timer: Optional[threading.Timer] = None
        self._poll_lock = threading.Lock()

    # Startup and data

    def init(self) -> None:
        """
        Load data, then ask for credentials. A remembered user only needs to
        re-enter the PIN.
        """
        logger.info("App initializing...")
        self.load_data()
        saved = self.storage.load_session()
        if saved:
            self.auth.show_relogin(saved)
        else:
            self.auth.show_login()

    def load_data(self, silent: bool = False) -> bool:
        """
        Pull the full dataset and replace the state wholesale.

        Non-silent loads show the loading indicator, re-render the current
        page and alert on failure. Silent loads only update the state.

        Returns:
            bool: True if the pull succeeded
        """
        if not silent:
            self.ui.show_loading(True)
        try:
            data = self.api.get_all_data()
            self.state.replace_all(data)
            self.templates = TemplateLibrary(self.state.templates)
            if not silent and self.state.user:
                self.router.refresh()
            return True
        except ClientError as e:
            logger.error(f"Load failed: {e.message}")
            if not silent:
                self.ui.alert("Failed to sync. Check connection.")
            return False
        finally:
            if not silent:
                self.ui.show_loading(False)

    # Polling

    def start_polling(self, interval: Optional[float] = None) -> None:
        """
        Reload silently every `interval` seconds until stopped.
        """
        self.stop_polling()
        if interval:
            self.poll_interval = interval
        with self._poll_lock:
            self._schedule_poll()
        logger.info(f"Polling every {self.poll_interval}s")

    def stop_polling(self) -> None:
        with self._poll_lock:
            if self._poll_timer is not None:
                self._poll_timer.cancel()
                self._poll_timer = None

    @property
    def polling(self) -> bool:
        return self._poll_timer is not None

    def _schedule_poll(self) -> None:
        self._poll_timer = threading.Timer(self.poll_interval, self._poll)
        self._poll_timer.daemon = True
        self._poll_timer.start()

    def _poll(self) -> None:
        logger.info("Polling...")
        self.load_data(silent=True)
        with self._poll_lock:
            if self._poll_timer is not None:
                self._schedule_poll()

    # Authorization

    @property
    def role(self) -> Optional[str]:
        return (self.state.user or {}).get("role")

    def has_permission(self, action: Action) -> bool:
        return self.policy.has_permission(self.role, action)

    def require(self, action: Action, message: Optional[str] = None) -> None:
        """
        Raises:
            PermissionDeniedError: If the session role may not perform the action
        """
        if not self.has_permission(action):
            logger.warning(f"Permission denied: {self.role} attempted {Action(action).value}")
            raise PermissionDeniedError(message or "Access Denied")

    # Background writes

    def create_payload(self, collection: str, placeholder: str) -> Dict[str, Any]:
        """
        Copy a locally created record as a create payload, without its id.

        Raises:
            ClientError: If the record is not in state
        """
        record = self.state.find(collection, placeholder)
        if record is None:
            raise ClientError(f"{placeholder} is not in {collection}")
        return {key: value for key, value in record.items() if key != "id"}

    def create_remote(self, collection: str, placeholder: str, payload: Optional[Dict[str, Any]] = None) -> str:
        """
        Send a locally created record to the backend and adopt the id it
        assigns. Runs inside a sync job.

        The payload is taken when the user acts, so a reload between the
        action and the job does not lose the write. Ids of referenced
        records are resolved at send time, so a parent created earlier in
        the queue is referenced by its server id.

        Args:
            collection: Collection name
            placeholder: Local id of the record
            payload: Captured record fields; read from state when omitted

        Returns:
            str: Server id

        Raises:
            ClientError: If the call fails; the record is marked FAILED
        """
        payload = dict(payload) if payload is not None else self.create_payload(collection, placeholder)
        for column in FOREIGN_KEYS.get(collection, ()):
            if payload.get(column):
                payload[column] = self.state.resolve_id(payload[column])
        try:
            server_id = getattr(self.api, CREATE_CALLS[collection])(payload)
        except ClientError:
            self.state.mark(placeholder, SyncStatus.FAILED)
            raise
        if not server_id:
            self.state.mark(placeholder, SyncStatus.FAILED)
            raise ClientError(f"Backend returned no id for {placeholder}")
        self.state.reconcile_id(collection, placeholder, server_id)
        return server_id

    def submit_create(self, description: str, collection: str, placeholder: str) -> Future:
        payload = self.create_payload(collection, placeholder)
        return self.sync.submit(description, self.create_remote, collection, placeholder, payload)

    def update_remote(self, record_id: str, call: Callable[..., Any], *args) -> None:
        """
        Run an update call against the current id of a record and record the
        outcome in its sync status.
        """
        resolved = self.state.resolve_id(record_id)
        try:
            call(resolved, *args)
        except ClientError:
            self.state.mark(resolved, SyncStatus.FAILED)
            raise
        self.state.mark(resolved, SyncStatus.COMMITTED)

    def submit_update(self, description: str, record_id: str, call: Callable[..., Any], *args) -> Future:
        return self.sync.submit(description, self.update_remote, record_id, call, *args)

    def close(self) -> None:
        self.stop_polling()
        self.sync.shutdown()
        self.api.close()


def create_context(
    ui: Optional[UserInterface] = None,
    backend_url: Optional[str] = None,
    storage: Optional[LocalStorage] = None,
    **kwargs: Dict[str, Any],
) -> AppContext:
    """
    Build an application context.

    The backend URL is taken, in order, from the argument, the override
    saved in durable storage, then settings. With none the client runs
    against the in-memory mock backend.
    """
    storage = storage or LocalStorage(settings.client_storage_path)
    url = backend_url or storage.get(BACKEND_URL_KEY) or settings.backend_url
    api = kwargs.pop("api", None) or ApiClient(url)
    return AppContext(api=api, ui=ui or HeadlessUI(), storage=storage, **kwargs)

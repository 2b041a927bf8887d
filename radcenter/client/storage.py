"""
Durable local storage for the client.

A small JSON key/value file standing in for browser local storage. Two keys
are used: the remembered session and the backend URL override.
"""
from pathlib import Path
from typing import Any, Dict, Optional
import json
import logging

logger = logging.getLogger(__name__)

SESSION_KEY = "rad_user"
BACKEND_URL_KEY = "rad_gas_url"

# Never persisted with a session
SECRET_FIELDS = ("pin",)


class LocalStorage:
    """
    JSON-file backed key/value store. With no path it lives in memory only.
    """

    def __init__(self, path: Optional[str] = None):
        self.path = Path(path).expanduser() if path else None
        self._data: Dict[str, Any] = {}
        self._load()

    def _load(self) -> None:
        if self.path is None or not self.path.exists():
            return
        try:
            self._data = json.loads(self.path.read_text(encoding="utf-8")) or {}
        except (OSError, ValueError) as e:
            logger.error(f"Unreadable client storage {self.path}, starting empty: {str(e)}")
            self._data = {}

    def _flush(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self._data, indent=2), encoding="utf-8")

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
        self._flush()

    def remove(self, key: str) -> None:
        if key in self._data:
            del self._data[key]
            self._flush()

    # Session helpers

    def save_session(self, user: Dict[str, Any]) -> None:
        """
        Remember the logged-in identity for re-login. Secrets are stripped.
        """
        self.set(SESSION_KEY, {k: v for k, v in user.items() if k not in SECRET_FIELDS})

    def load_session(self) -> Optional[Dict[str, Any]]:
        """
        Get the remembered identity, dropping malformed entries.
        """
        session = self.get(SESSION_KEY)
        if session is None:
            return None
        if not isinstance(session, dict) or not session.get("id"):
            logger.error("Invalid saved user, clearing it")
            self.remove(SESSION_KEY)
            return None
        return session

    def clear_session(self) -> None:
        self.remove(SESSION_KEY)

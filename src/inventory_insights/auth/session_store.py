"""
Client-side session storage.

Key/value storage with the same keys the web client kept in localStorage:
``jwt_token`` holds the bearer token (or a provider session JSON blob) and
``user_data`` holds the JSON-encoded user record. Writes are synchronous and
report success; last write wins.
"""

import json
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional, Any

from inventory_insights.auth.tokens import extract_bearer_token, is_token_expired
from inventory_insights.core.models import UserRecord
from inventory_insights.utils.logger import get_logger

logger = get_logger(__name__)

TOKEN_KEY = "jwt_token"
USER_DATA_KEY = "user_data"
LEGACY_SESSION_KEY = "supabase_session"


class SessionStore(ABC):
    """Abstract string key/value store with session helpers on top."""

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def set_items(self, items: Dict[str, str]) -> bool:
        """Write several keys at once. Returns False if the write failed."""
        pass

    @abstractmethod
    def remove_items(self, *keys: str) -> bool:
        pass

    def save_login(self, token: str, user: UserRecord) -> bool:
        """Persist token and user record in one write."""
        saved = self.set_items({
            TOKEN_KEY: token,
            USER_DATA_KEY: json.dumps(user.to_dict()),
        })
        if saved:
            logger.debug(f"Session persisted for {user.email}")
        else:
            logger.error(f"Failed to persist session for {user.email}")
        return saved

    def clear(self) -> bool:
        return self.remove_items(TOKEN_KEY, USER_DATA_KEY, LEGACY_SESSION_KEY)

    def get_token(self) -> Optional[str]:
        """Bearer token from ``jwt_token``, falling back to a stored provider session."""
        stored = self.get_item(TOKEN_KEY) or self.get_item(LEGACY_SESSION_KEY)
        return extract_bearer_token(stored)

    def get_user_data(self) -> Dict[str, Any]:
        raw = self.get_item(USER_DATA_KEY)
        if not raw:
            return {}
        try:
            data = json.loads(raw)
        except ValueError:
            logger.error("Stored user_data is not valid JSON")
            return {}
        return data if isinstance(data, dict) else {}

    def get_user(self) -> Optional[UserRecord]:
        data = self.get_user_data()
        if not data:
            return None
        return UserRecord.from_dict(data)

    def get_tenant_id(self) -> Optional[str]:
        data = self.get_user_data()
        return data.get("tenant_id") or data.get("tenantId")

    def is_authenticated(self) -> bool:
        token = self.get_token()
        return bool(token) and not is_token_expired(token)


class MemorySessionStore(SessionStore):
    """In-process store, for tests and one-shot scripts."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_items(self, items: Dict[str, str]) -> bool:
        self._data.update(items)
        return True

    def remove_items(self, *keys: str) -> bool:
        for key in keys:
            self._data.pop(key, None)
        return True


class FileSessionStore(SessionStore):
    """
    JSON file store.

    Each write replaces the file atomically through a temporary file in the
    same directory. The file is created with owner-only permissions.
    """

    def __init__(self, path: str):
        self.path = Path(path).expanduser()

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Could not read session file {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, str]) -> bool:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), prefix=".session-", suffix=".json")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f)
                os.chmod(tmp_path, 0o600)
                os.replace(tmp_path, self.path)
            except OSError:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            logger.error(f"Could not write session file {self.path}: {e}")
            return False
        return True

    def get_item(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set_items(self, items: Dict[str, str]) -> bool:
        data = self._read()
        data.update(items)
        return self._write(data)

    def remove_items(self, *keys: str) -> bool:
        data = self._read()
        if not any(key in data for key in keys):
            return True
        for key in keys:
            data.pop(key, None)
        return self._write(data)

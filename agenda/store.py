from __future__ import annotations

import json
import logging
import os
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Dict, List, Protocol

from .auth.admin import validate_admin_access
from .config import settings

logger = logging.getLogger(__name__)

TOKEN_KEY = "token"
USER_KEY = "user"

AuthListener = Callable[[str, "AuthSession"], None]


class KeyValueStorage(Protocol):
    def get(self, key: str) -> str | None:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def remove(self, *keys: str) -> None:
        ...


@dataclass
class InMemoryStorage:
    values: Dict[str, str] = field(default_factory=dict)

    def get(self, key: str) -> str | None:
        return self.values.get(key)

    def set(self, key: str, value: str) -> None:
        self.values[key] = value

    def remove(self, *keys: str) -> None:
        for key in keys:
            self.values.pop(key, None)


class JsonFileStorage:
    """Key-value entries kept in a single JSON document, rewritten whole on every change."""

    def __init__(self, path: str) -> None:
        self.path = path

    def _read(self) -> Dict[str, str]:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, "r", encoding="utf-8") as fh:
            try:
                data = json.load(fh)
            except json.JSONDecodeError:
                logger.warning("Ignoring unreadable session file %s", self.path)
                return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, str]) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as fh:
            json.dump(data, fh, ensure_ascii=False)

    def get(self, key: str) -> str | None:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove(self, *keys: str) -> None:
        data = self._read()
        for key in keys:
            data.pop(key, None)
        self._write(data)


def build_storage(path: str | None) -> KeyValueStorage:
    if not path:
        return InMemoryStorage()
    return JsonFileStorage(os.path.expanduser(path))


class AuthSession:
    """Token and user of the logged-in administrator.

    Both values are written together on login and erased together on logout;
    subscribers are told about each change.
    """

    def __init__(self, storage: KeyValueStorage) -> None:
        self.storage = storage
        self.token: str | None = None
        self.user: Dict[str, Any] | None = None
        self._listeners: List[AuthListener] = []

    def init(self) -> bool:
        token = self.storage.get(TOKEN_KEY)
        raw_user = self.storage.get(USER_KEY)
        if not raw_user:
            self.token, self.user = None, None
            return False
        try:
            user = json.loads(raw_user)
        except (json.JSONDecodeError, RecursionError):
            logger.warning("Stored user is not valid JSON, clearing session")
            self.clear()
            return False
        if not isinstance(user, dict):
            logger.warning("Stored user is not an object, clearing session")
            self.clear()
            return False
        if not validate_admin_access(user, token):
            logger.info("Stored session is not an administrator, clearing it")
            self.clear()
            return False
        self.token, self.user = token, user
        return True

    def login(self, user: Dict[str, Any], token: str | None) -> Dict[str, Any]:
        stored = {**user, "isAdmin": validate_admin_access(user, token)}
        self.storage.set(USER_KEY, json.dumps(stored, ensure_ascii=False))
        if token:
            self.storage.set(TOKEN_KEY, token)
        else:
            self.storage.remove(TOKEN_KEY)
        self.token, self.user = token, stored
        logger.info("Session started for %s", stored.get("email") or stored.get("nome") or "unknown user")
        self._notify("login")
        return stored

    def clear(self) -> None:
        self.storage.remove(TOKEN_KEY, USER_KEY)
        self.token, self.user = None, None

    def logout(self) -> None:
        self.clear()
        logger.info("Session closed")
        self._notify("logout")

    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, event: str) -> None:
        for listener in list(self._listeners):
            listener(event, self)

    def get_token(self) -> str | None:
        return self.token

    @property
    def is_logged_in(self) -> bool:
        return bool(self.token and self.user)

    @property
    def is_admin(self) -> bool:
        return isinstance(self.user, dict) and self.user.get("isAdmin") is True


auth_session = AuthSession(build_storage(settings.storage_path))

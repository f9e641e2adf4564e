"""Client-side session state: the bearer token plus the cached user summary.

The original dashboard kept both in browser local storage. Here the storage
is injected, so the same ``Session`` can be backed by memory in tests or by a
JSON file for a long-lived client.
"""

import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class SessionStore:
    """Where a session is persisted between calls."""

    def load(self) -> dict | None:
        raise NotImplementedError

    def save(self, data: dict) -> None:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError


class MemorySessionStore(SessionStore):
    def __init__(self, data: dict | None = None) -> None:
        self._data = dict(data) if data else None

    def load(self) -> dict | None:
        return dict(self._data) if self._data else None

    def save(self, data: dict) -> None:
        self._data = dict(data)

    def clear(self) -> None:
        self._data = None


class FileSessionStore(SessionStore):
    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self) -> dict | None:
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding='utf-8'))
        except (OSError, json.JSONDecodeError):
            logger.warning('Ignoring unreadable session file %s', self.path)
            return None
        return data if isinstance(data, dict) else None

    def save(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data), encoding='utf-8')

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


class Session:
    def __init__(self, store: SessionStore | None = None) -> None:
        self.store = store or MemorySessionStore()

    @property
    def token(self) -> str | None:
        data = self.store.load() or {}
        return data.get('token')

    @property
    def user(self) -> dict | None:
        data = self.store.load() or {}
        return data.get('user')

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    def save(self, token: str, user: dict) -> None:
        self.store.save({'token': token, 'user': {key: user.get(key) for key in ('id', 'fullName', 'email')}})

    def update_user(self, user: dict) -> None:
        token = self.token
        if token:
            self.save(token, user)

    def clear(self) -> None:
        self.store.clear()

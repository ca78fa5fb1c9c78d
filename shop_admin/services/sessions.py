import json
import logging
import os
import re
import secrets
import threading
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

SESSION_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{16,128}$")


def new_session_id() -> str:
    return secrets.token_urlsafe(32)


def is_valid_session_id(session_id: str) -> bool:
    return bool(session_id) and SESSION_ID_PATTERN.match(session_id) is not None


class SessionStore(ABC):
    """
    Server-side session records keyed by session id. The store owns
    expiry: a record older than its time-to-live reads as absent.
    """

    def __init__(self, ttl_seconds: int, clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds
        self.clock = clock

    def _expires_at(self) -> float:
        return self.clock() + self.ttl_seconds

    @abstractmethod
    def get(self, session_id: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    def set(self, session_id: str, data: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    def touch(self, session_id: str) -> None:
        ...

    @abstractmethod
    def destroy(self, session_id: str) -> None:
        ...

    def reap(self) -> int:
        """Remove expired records, returning how many were dropped."""
        return 0


class MemorySessionStore(SessionStore):
    def __init__(self, ttl_seconds: int, clock: Callable[[], float] = time.time):
        super().__init__(ttl_seconds, clock)
        self._records: Dict[str, Tuple[float, Dict[str, Any]]] = {}
        self._lock = threading.Lock()

    def get(self, session_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            record = self._records.get(session_id)
            if record is None:
                return None
            expires_at, data = record
            if expires_at <= self.clock():
                del self._records[session_id]
                return None
            return dict(data)

    def set(self, session_id: str, data: Dict[str, Any]) -> None:
        with self._lock:
            self._records[session_id] = (self._expires_at(), dict(data))

    def touch(self, session_id: str) -> None:
        with self._lock:
            record = self._records.get(session_id)
            if record is not None:
                self._records[session_id] = (self._expires_at(), record[1])

    def destroy(self, session_id: str) -> None:
        with self._lock:
            self._records.pop(session_id, None)

    def reap(self) -> int:
        now = self.clock()
        with self._lock:
            expired = [sid for sid, (expires_at, _) in self._records.items() if expires_at <= now]
            for sid in expired:
                del self._records[sid]
        return len(expired)


class FileSessionStore(SessionStore):
    """
    One ``<session id>.json`` file per session holding the session data and
    its expiry time (epoch seconds).
    """

    def __init__(self, directory: str, ttl_seconds: int, clock: Callable[[], float] = time.time):
        super().__init__(ttl_seconds, clock)
        self.directory = Path(directory)
        self._lock = threading.Lock()

    def ensure_directory(self) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, session_id: str) -> Optional[Path]:
        if not is_valid_session_id(session_id):
            return None
        return self.directory / f"{session_id}.json"

    def _read(self, path: Path) -> Optional[Dict[str, Any]]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.warning(f"Unreadable session file {path.name}: {str(e)}")
            return None

    def _write(self, path: Path, record: Dict[str, Any]) -> None:
        self.ensure_directory()
        tmp_path = path.with_suffix(".json.tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(record, f)
        os.replace(tmp_path, path)

    def get(self, session_id: str) -> Optional[Dict[str, Any]]:
        path = self._path(session_id)
        if path is None:
            return None
        with self._lock:
            record = self._read(path)
            if record is None:
                return None
            if record.get("expires", 0) <= self.clock():
                path.unlink(missing_ok=True)
                return None
            return record.get("data") or {}

    def set(self, session_id: str, data: Dict[str, Any]) -> None:
        path = self._path(session_id)
        if path is None:
            raise ValueError("Invalid session id")
        with self._lock:
            self._write(path, {"data": data, "expires": self._expires_at()})

    def touch(self, session_id: str) -> None:
        path = self._path(session_id)
        if path is None:
            return
        with self._lock:
            record = self._read(path)
            if record is None:
                return
            record["expires"] = self._expires_at()
            self._write(path, record)

    def destroy(self, session_id: str) -> None:
        path = self._path(session_id)
        if path is None:
            return
        with self._lock:
            path.unlink(missing_ok=True)

    def reap(self) -> int:
        if not self.directory.is_dir():
            return 0
        now = self.clock()
        removed = 0
        with self._lock:
            for path in self.directory.glob("*.json"):
                record = self._read(path)
                if record is None or record.get("expires", 0) <= now:
                    path.unlink(missing_ok=True)
                    removed += 1
        if removed:
            logger.info(f"Reaped {removed} expired session(s)")
        return removed


def build_session_store(backend: str, ttl_seconds: int, directory: str) -> SessionStore:
    if backend == "memory":
        return MemorySessionStore(ttl_seconds)
    if backend == "file":
        return FileSessionStore(directory, ttl_seconds)
    raise ValueError(f"Unknown session backend: {backend}")


class ServerSession:
    """
    The session bound to the current request. Handlers change it; the
    session middleware persists the outcome once the response is ready.
    """

    def __init__(self, session_id: Optional[str] = None, data: Optional[Dict[str, Any]] = None):
        self.id = session_id
        self.data: Dict[str, Any] = data or {}
        self.modified = False
        self.destroyed = False
        # Id that must be dropped from the store (logout, id rotation)
        self.previous_id: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.id is not None and not self.destroyed and bool(self.data)

    @property
    def user(self) -> Optional[Dict[str, Any]]:
        if self.destroyed:
            return None
        return self.data.get("user")

    def login(self, user: Dict[str, Any]) -> None:
        """Bind ``user`` to a freshly issued session id."""
        if self.id is not None:
            self.previous_id = self.id
        self.id = new_session_id()
        self.data = {"user": user}
        self.modified = True
        self.destroyed = False

    def destroy(self) -> None:
        if self.id is not None and self.previous_id is None:
            self.previous_id = self.id
        self.id = None
        self.data = {}
        self.destroyed = True
        self.modified = False

"""Session persistence across reloads.

Only ``{account, isAuthenticated}`` is ever persisted. Access tokens stay in
the API client's memory and are never handed to a store.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from jobgate.core.config import settings
from jobgate.schemas.account import AccountSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PersistedSession:
    """The persisted subset of session state."""

    account: AccountSnapshot | None
    is_authenticated: bool

    def to_json(self) -> dict[str, object]:
        """Serialize using the backend's camelCase field names."""
        return {
            "account": self.account.to_wire() if self.account else None,
            "isAuthenticated": self.is_authenticated,
        }

    @classmethod
    def from_json(cls, data: object) -> "PersistedSession | None":
        """Rebuild from stored JSON, or None if it is unusable.

        Args:
            data: Decoded JSON previously written by ``to_json``.

        Returns:
            PersistedSession, or None for malformed data.
        """
        if not isinstance(data, dict):
            return None
        raw_account = data.get("account")
        try:
            account = (
                AccountSnapshot.model_validate(raw_account)
                if raw_account is not None
                else None
            )
        except ValidationError:
            logger.warning("Discarding persisted session with invalid account")
            return None
        return cls(
            account=account,
            is_authenticated=bool(data.get("isAuthenticated")) and account is not None,
        )


class SessionStore(Protocol):
    """Storage backend for the persisted session subset."""

    def load(self) -> PersistedSession | None:
        """Return the last saved session, or None."""
        ...

    def save(self, session: PersistedSession) -> None:
        """Replace the saved session."""
        ...

    def clear(self) -> None:
        """Forget the saved session."""
        ...


class InMemorySessionStore:
    """Process-local store; nothing survives a restart."""

    def __init__(self) -> None:
        self._data: dict[str, object] | None = None

    def load(self) -> PersistedSession | None:
        """Return the last saved session, or None."""
        if self._data is None:
            return None
        return PersistedSession.from_json(self._data)

    def save(self, session: PersistedSession) -> None:
        """Replace the saved session."""
        self._data = session.to_json()

    def clear(self) -> None:
        """Forget the saved session."""
        self._data = None


class JsonFileSessionStore:
    """JSON file store, the analogue of browser local storage.

    Args:
        path: File to read and write.
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        """File backing this store."""
        return self._path

    def load(self) -> PersistedSession | None:
        """Return the last saved session, or None if missing or corrupt."""
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            logger.warning("Ignoring corrupt session file %s", self._path)
            return None
        return PersistedSession.from_json(data)

    def save(self, session: PersistedSession) -> None:
        """Write the session atomically via a temporary sibling file."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(session.to_json()), encoding="utf-8")
        tmp_path.replace(self._path)

    def clear(self) -> None:
        """Delete the session file if it exists."""
        self._path.unlink(missing_ok=True)


def default_session_store() -> SessionStore:
    """Store selected by ``settings.session_storage_path``.

    Returns:
        JsonFileSessionStore when a path is configured, else an in-memory
        store.
    """
    if settings.session_storage_path is not None:
        return JsonFileSessionStore(settings.session_storage_path)
    return InMemorySessionStore()

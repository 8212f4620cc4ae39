"""Session context: the acting identity and the store bound to it."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Callable, Optional

from pydantic import ValidationError

from usinadocs.config.models import AuthSettings, StorageSettings
from usinadocs.persistence import PersistenceAdapter, build_adapter
from usinadocs.store import DocumentStore

from .models import Identity

LOGGER = logging.getLogger(__name__)

SESSION_FILENAME = "session.json"


class SessionError(Exception):
    """Raised when the persisted session cannot be read."""


class SessionContext:
    """Own the signed-in identity and the document store built for it.

    ``start`` builds and loads a fresh store for an identity, ``end`` drops
    it. The identity is remembered in ``session.json`` inside the state
    directory so separate CLI invocations share one sign-in.
    """

    def __init__(
        self,
        storage: StorageSettings,
        auth: AuthSettings,
        *,
        adapter_factory: Callable[[StorageSettings], PersistenceAdapter] = build_adapter,
    ) -> None:
        self._storage = storage
        self._auth = auth
        self._adapter_factory = adapter_factory
        self._identity: Optional[Identity] = None
        self._store: Optional[DocumentStore] = None

    @property
    def identity(self) -> Optional[Identity]:
        return self._identity

    @property
    def store(self) -> DocumentStore:
        """Return the active store, or an empty inert one when signed out."""
        if self._store is None:
            return DocumentStore(self._adapter_factory(self._storage), None)
        return self._store

    @property
    def session_path(self) -> Path:
        return self._storage.resolved_state_dir() / SESSION_FILENAME

    def authenticate(self, email: str, password: str) -> Optional[Identity]:
        """Check credentials against the configured account; no side effects."""
        if email.strip().lower() != self._auth.email.lower() or password != self._auth.password:
            LOGGER.info("Rejected sign-in for %s", email)
            return None
        return Identity(id=self._auth.user_id, email=self._auth.email, name=self._auth.name)

    def login(self, email: str, password: str) -> Optional[Identity]:
        """Authenticate, remember the identity, and start a session."""
        identity = self.authenticate(email, password)
        if identity is None:
            return None
        self._write_session(identity)
        self.start(identity)
        return identity

    def restore(self) -> Optional[Identity]:
        """Start a session for the identity remembered on disk, if any.

        Raises:
            SessionError: If ``session.json`` exists but cannot be parsed.
        """
        path = self.session_path
        if not path.exists():
            return None
        try:
            identity = Identity.model_validate(json.loads(path.read_text(encoding="utf-8")))
        except (json.JSONDecodeError, ValidationError) as exc:
            raise SessionError(f"Invalid session data in {path}: {exc}") from exc
        self.start(identity)
        return identity

    def start(self, identity: Identity) -> DocumentStore:
        """Build and load a store for ``identity``, replacing any active one."""
        self._close_store()
        adapter = self._adapter_factory(self._storage)
        store = DocumentStore(
            adapter,
            identity,
            seed_defaults=self._storage.seed_default_sectors,
        )
        store.load()
        self._identity = identity
        self._store = store
        LOGGER.info("Session started for %s", identity.email)
        return store

    def end(self) -> None:
        """Clear the store, close its adapter, and forget the identity."""
        if self._identity is not None:
            LOGGER.info("Session ended for %s", self._identity.email)
        self._close_store()
        self._identity = None
        self.session_path.unlink(missing_ok=True)

    def close(self) -> None:
        """Release the store without signing out."""
        self._close_store()

    def _close_store(self) -> None:
        if self._store is None:
            return
        self._store.clear()
        self._store.adapter.close()
        self._store = None

    def _write_session(self, identity: Identity) -> None:
        path = self.session_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(identity.model_dump(mode="json"), indent=2), encoding="utf-8")


__all__ = ["Identity", "SessionContext", "SessionError", "SESSION_FILENAME"]

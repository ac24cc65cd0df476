# Overview: Session bootstrap; hydrates per-session application state from the remote store.

"""
Session Bootstrap

Runs once per session start (login, first request after a restart, explicit
refresh) and again whenever the auth provider reports SIGNED_IN:

1. fetch the allow-list (users), normalized at the store boundary
2. resolve the presented session with the auth provider
3. if the session email is allow-listed, set it as the current identity and
   fetch main data (clients newest-first, catalog)

SIGNED_OUT evicts the session's cached state.

LIVENESS: the whole bootstrap is bounded by BOOTSTRAP_TIMEOUT_SECONDS. When
the deadline passes the caller stops waiting and gets whatever state had been
gathered with loading=False. The remote calls are not cancelled. Errors while
fetching are logged and treated as "no session".
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from ..records import AppState, Client, GiftCatalogItem, User, normalize_email
from .auth_provider import SIGNED_IN, SIGNED_OUT, AuthProvider, AuthSession
from .concurrency import run_with_deadline
from .table_store import RemoteTimeoutError, TableStore
from ..time_utils import utcnow


logger = logging.getLogger(__name__)

DEFAULT_BOOTSTRAP_TIMEOUT = 7.0


def fetch_users(store: TableStore) -> tuple[User, ...]:
    rows = store.select("users", "email, name, is_admin")
    return tuple(User.from_row(r) for r in rows)


def fetch_clients(store: TableStore) -> tuple[Client, ...]:
    rows = store.select("clients", "*", order_by="created_at", descending=True)
    return tuple(Client.from_row(r) for r in rows)


def fetch_catalog(store: TableStore) -> tuple[GiftCatalogItem, ...]:
    rows = store.select("catalog", "*")
    return tuple(GiftCatalogItem.from_row(r) for r in rows)


@dataclass
class _Progress:
    """Scratch state filled in by the bootstrap worker as each step lands."""
    users: tuple[User, ...] = ()
    current_user: User | None = None
    clients: tuple[Client, ...] = ()
    catalog: tuple[GiftCatalogItem, ...] = ()

    def snapshot(self) -> AppState:
        return AppState(
            current_user=self.current_user,
            users=self.users,
            clients=self.clients,
            catalog=self.catalog,
            loading=False,
        )


def _hydrate(
    store: TableStore,
    auth: AuthProvider,
    progress: _Progress,
    access_token: str | None,
    session: AuthSession | None,
) -> None:
    try:
        users = fetch_users(store)
        progress.users = users

        if session is None and access_token:
            session = auth.get_session(access_token)
        if session is None or not session.email:
            return

        email = normalize_email(session.email)
        found = next((u for u in users if u.email == email), None)
        if found is None:
            logger.info("Authenticated %s is not on the allow-list", email)
            return
        progress.current_user = found
    except Exception:
        logger.exception("Session bootstrap failed; continuing signed out")
        progress.current_user = None
        return

    # Identity stays set even if main data fails to load
    try:
        progress.clients = fetch_clients(store)
        progress.catalog = fetch_catalog(store)
    except Exception:
        logger.exception("Failed to load clients/catalog for %s", progress.current_user.email)


def bootstrap(
    store: TableStore,
    auth: AuthProvider,
    *,
    access_token: str | None = None,
    session: AuthSession | None = None,
    timeout: float = DEFAULT_BOOTSTRAP_TIMEOUT,
    app=None,
) -> AppState:
    """
    Build the application state for a session, never waiting past `timeout`.

    Pass either the bearer token (resolved through the provider) or an
    already verified AuthSession (the SIGNED_IN path). `app` is pushed as the
    application context on the worker thread for backends that need one.
    """
    progress = _Progress()

    def work() -> None:
        if app is not None:
            with app.app_context():
                _hydrate(store, auth, progress, access_token, session)
        else:
            _hydrate(store, auth, progress, access_token, session)

    try:
        run_with_deadline(work, timeout, what="session bootstrap")
    except RemoteTimeoutError:
        logger.warning("Bootstrap deadline (%.1fs) reached; admitting with partial state", timeout)

    return progress.snapshot()


class StateCache:
    """
    Per-session application state keyed by access token.

    Each entry remembers its session's expiry. Expired entries are dropped
    when read and swept whenever a new entry is stored.
    """

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self._lock = threading.Lock()
        self._clock = clock
        self._states: dict[str, tuple[AppState, datetime | None]] = {}

    def _expired(self, expires_at: datetime | None, now: datetime) -> bool:
        return expires_at is not None and expires_at <= now

    def get(self, token: str) -> AppState | None:
        with self._lock:
            entry = self._states.get(token)
            if entry is None:
                return None
            state, expires_at = entry
            if self._expired(expires_at, self._clock()):
                del self._states[token]
                return None
            return state

    def put(self, token: str, state: AppState, expires_at: datetime | None = None) -> None:
        """Store state; without expires_at the entry keeps its previous expiry."""
        with self._lock:
            now = self._clock()
            if expires_at is None and token in self._states:
                expires_at = self._states[token][1]
            self._states = {
                key: entry for key, entry in self._states.items()
                if not self._expired(entry[1], now)
            }
            self._states[token] = (state, expires_at)

    def evict(self, token: str) -> AppState | None:
        with self._lock:
            entry = self._states.pop(token, None)
            return entry[0] if entry else None

    def clear(self) -> None:
        with self._lock:
            self._states.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._states)


class SessionBootstrap:
    """
    Keeps the state cache in step with auth events.

    attach() subscribes to the provider: SIGNED_IN hydrates and caches the new
    session, SIGNED_OUT evicts it. Requests read through state_for(), which
    bootstraps on a cache miss (process restart, another worker's login).
    """

    def __init__(
        self,
        app,
        store: TableStore,
        auth: AuthProvider,
        *,
        timeout: float = DEFAULT_BOOTSTRAP_TIMEOUT,
        cache: StateCache | None = None,
    ):
        self.app = app
        self.store = store
        self.auth = auth
        self.timeout = timeout
        self.cache = cache if cache is not None else StateCache()
        self._unsubscribe = None

    def attach(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self.auth.subscribe(self._on_auth_event)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_auth_event(self, event: str, payload) -> None:
        if event == SIGNED_IN and isinstance(payload, AuthSession):
            self.load(payload)
        elif event == SIGNED_OUT and payload:
            self.cache.evict(payload)

    def load(self, session: AuthSession) -> AppState:
        """Run a bootstrap for a verified session and cache it if admitted."""
        state = bootstrap(
            self.store,
            self.auth,
            session=session,
            timeout=self.timeout,
            app=self.app,
        )
        if state.is_authenticated:
            self.cache.put(session.access_token, state, session.expires_at)
        else:
            self.cache.evict(session.access_token)
        return state

    def state_for(self, session: AuthSession) -> AppState:
        cached = self.cache.get(session.access_token)
        if cached is not None and cached.current_user is not None \
                and cached.current_user.email == normalize_email(session.email):
            return cached
        return self.load(session)

    def refresh(self, session: AuthSession) -> AppState:
        return self.load(session)

    def commit(self, access_token: str, state: AppState) -> AppState:
        """Store the state a manager returned after a confirmed remote write."""
        self.cache.put(access_token, state)
        return state

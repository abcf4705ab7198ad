"""
Client Session Registry
Owns the per-session CartStore and CheckoutWorkflow objects

Created once at application startup and reached through app.state, so no
module-level cart exists. A session's cart is rehydrated from its local
storage on first use and dropped from memory by close(), after
max_idle_seconds without use, or when more than max_sessions are open
(least recently used first). Dropping a session never touches its
persisted cart.
"""
import logging
import re
import time
from collections import OrderedDict
from pathlib import Path
from typing import Callable, Dict, Optional

from storefront.core.exceptions import EmptyCartError
from storefront.core.local_storage import FileStorage
from storefront.services.cart_store import CartStore
from storefront.services.checkout_service import CheckoutWorkflow

logger = logging.getLogger(__name__)

SESSION_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{8,64}$")

DEFAULT_MAX_IDLE_SECONDS = 30 * 60
DEFAULT_MAX_SESSIONS = 10000


def is_valid_session_id(session_id: str) -> bool:
    return bool(session_id and SESSION_ID_PATTERN.match(session_id))


class ClientSessionRegistry:
    """
    Args:
        storage_factory: session id -> local storage for that session
        workflow_factory: cart -> new CheckoutWorkflow
        max_idle_seconds: Sessions unused for longer are dropped from memory
        max_sessions: Upper bound on sessions held in memory
        clock: Monotonic time source (overridable in tests)
    """

    def __init__(
        self,
        storage_factory: Callable[[str], object],
        workflow_factory: Callable[[CartStore], CheckoutWorkflow],
        max_idle_seconds: float = DEFAULT_MAX_IDLE_SECONDS,
        max_sessions: int = DEFAULT_MAX_SESSIONS,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_sessions < 1 or max_idle_seconds <= 0:
            raise ValueError("Session limits must be positive")
        self._storage_factory = storage_factory
        self._workflow_factory = workflow_factory
        self._max_idle_seconds = max_idle_seconds
        self._max_sessions = max_sessions
        self._clock = clock
        self._carts: Dict[str, CartStore] = {}
        self._checkouts: Dict[str, CheckoutWorkflow] = {}
        # session id -> last use, least recently used first
        self._last_used: "OrderedDict[str, float]" = OrderedDict()

    @classmethod
    def with_file_storage(cls, directory, workflow_factory, **limits) -> "ClientSessionRegistry":
        base = Path(directory)
        return cls(lambda session_id: FileStorage(base / session_id), workflow_factory, **limits)

    def __len__(self) -> int:
        return len(self._carts)

    def _check(self, session_id: str) -> None:
        if not is_valid_session_id(session_id):
            raise ValueError(f"Invalid session id: {session_id!r}")

    def _touch(self, session_id: str) -> None:
        self._last_used[session_id] = self._clock()
        self._last_used.move_to_end(session_id)

    def _evict_stale(self) -> None:
        """Drop idle sessions, then the least recently used ones over the bound"""
        cutoff = self._clock() - self._max_idle_seconds
        while self._last_used:
            session_id, last_used = next(iter(self._last_used.items()))
            if last_used > cutoff and len(self._last_used) <= self._max_sessions:
                break
            self.close(session_id)
            logger.debug(f"Evicted idle session {session_id}")

    def cart(self, session_id: str) -> CartStore:
        self._check(session_id)
        store = self._carts.get(session_id)
        if store is None:
            store = CartStore(self._storage_factory(session_id))
            self._carts[session_id] = store
            logger.debug(f"Opened cart for session {session_id} ({store.get_item_count()} items)")
        self._touch(session_id)
        self._evict_stale()
        return store

    def begin_checkout(self, session_id: str) -> CheckoutWorkflow:
        """Start (or restart) checkout; raises EmptyCartError for an empty cart"""
        cart = self.cart(session_id)
        if cart.is_empty:
            self._checkouts.pop(session_id, None)
            raise EmptyCartError()
        workflow = self._workflow_factory(cart)
        self._checkouts[session_id] = workflow
        return workflow

    def checkout(self, session_id: str) -> Optional[CheckoutWorkflow]:
        self._check(session_id)
        self._evict_stale()
        workflow = self._checkouts.get(session_id)
        if workflow is not None:
            self._touch(session_id)
        return workflow

    def end_checkout(self, session_id: str) -> None:
        self._checkouts.pop(session_id, None)

    def close(self, session_id: str) -> None:
        """Tear the session down; the persisted cart stays in storage"""
        self._checkouts.pop(session_id, None)
        self._carts.pop(session_id, None)
        self._last_used.pop(session_id, None)

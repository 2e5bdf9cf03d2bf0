"""Ephemeral store for in-flight authorization code flows.

Maps the OAuth ``state`` value to the PKCE parameters and context generated
when the flow started. Entries are one-shot: ``take`` removes the entry it
returns, so a callback can never be replayed with the same state.
"""

from __future__ import annotations

import logging
import threading
import time

from mcp_auth.models.errors import DuplicateStateError, FlowStateNotFoundError
from mcp_auth.models.security import FlowState, PKCEParameters
from mcp_auth.primitives.pkce import generate_pkce_parameters

logger = logging.getLogger(__name__)


class FlowStateStore:
    """Process-local, lock-guarded map of state -> FlowState.

    Distinct states are independent. For a single state, ``take`` is atomic:
    of any number of concurrent callers exactly one receives the entry.

    The lock is a ``threading.Lock`` and no critical section awaits or does
    I/O, so the store is safe from threads and from asyncio tasks alike.
    """

    def __init__(self, ttl: float | None = None):
        """Initialize the store.

        Args:
            ttl: Seconds after which an unfinished flow expires. None keeps
                flows until they are taken or cleared.
        """
        if ttl is not None and ttl <= 0:
            raise ValueError("ttl must be positive")
        self.ttl = ttl
        self._flows: dict[str, FlowState] = {}
        self._lock = threading.Lock()

    def start(
        self, state: str, redirect_uri: str, resource: str | None = None
    ) -> PKCEParameters:
        """Record a new flow and return its PKCE parameters.

        Args:
            state: Opaque, caller-chosen correlation value
            redirect_uri: Redirect URI the flow will return to
            resource: Optional RFC 8707 resource indicator

        Returns:
            PKCEParameters to put in the authorization URL

        Raises:
            DuplicateStateError: If a flow is already pending for ``state``
        """
        pkce = generate_pkce_parameters()
        flow = FlowState(
            pkce=pkce,
            redirect_uri=redirect_uri,
            resource=resource,
            created_at=time.time(),
        )

        with self._lock:
            self._purge_expired_locked(flow.created_at)
            if state in self._flows:
                raise DuplicateStateError(state)
            self._flows[state] = flow

        logger.debug(f"Started flow for state {state!r}")
        return pkce

    def take(self, state: str) -> FlowState:
        """Remove and return the flow for ``state``.

        Raises:
            FlowStateNotFoundError: If the flow was never started, was
                already taken, was cleared, or has expired
        """
        with self._lock:
            flow = self._flows.pop(state, None)

        if flow is None:
            logger.warning(f"No pending flow for state {state!r}")
            raise FlowStateNotFoundError(state)

        if flow.is_expired(self.ttl):
            logger.warning(f"Flow for state {state!r} expired")
            raise FlowStateNotFoundError(state)

        logger.debug(f"Took flow for state {state!r}")
        return flow

    def clear(self, state: str | None = None) -> None:
        """Remove one flow, or every flow when ``state`` is None."""
        with self._lock:
            if state is None:
                count = len(self._flows)
                self._flows.clear()
            else:
                count = 1 if self._flows.pop(state, None) is not None else 0

        logger.debug(f"Cleared {count} flow(s)")

    def purge_expired(self) -> int:
        """Remove expired flows.

        Returns:
            Number of flows removed
        """
        with self._lock:
            return self._purge_expired_locked(time.time())

    def _purge_expired_locked(self, now: float) -> int:
        if self.ttl is None:
            return 0
        expired = [s for s, f in self._flows.items() if f.is_expired(self.ttl, now)]
        for s in expired:
            del self._flows[s]
        if expired:
            logger.info(f"Purged {len(expired)} expired flow(s)")
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._flows)

    def __contains__(self, state: object) -> bool:
        with self._lock:
            return state in self._flows

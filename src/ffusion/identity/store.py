"""Shared identity index.

Lookups never take a lock. Writes take the lock for one normalized-name bucket,
so first sightings of the same name serialize while unrelated names proceed in
parallel. Every write publishes a fully built value with a single dict
assignment, so readers see either the old state or the new one.
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, Iterable, List, Optional, Tuple

from ffusion.models import PlayerIdentity


logger = logging.getLogger(__name__)


class IdentityStore:
    def __init__(self) -> None:
        self._buckets: Dict[str, Tuple[PlayerIdentity, ...]] = {}
        self._by_id: Dict[str, PlayerIdentity] = {}
        self._external: Dict[str, str] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def bucket_lock(self, normalized_name: str) -> threading.Lock:
        lock = self._locks.get(normalized_name)
        if lock is None:
            with self._locks_guard:
                lock = self._locks.setdefault(normalized_name, threading.Lock())
        return lock

    def candidates(self, normalized_name: str) -> Tuple[PlayerIdentity, ...]:
        return self._buckets.get(normalized_name, ())

    def get(self, player_id: str) -> Optional[PlayerIdentity]:
        return self._by_id.get(player_id)

    def by_external(self, external_id: str) -> Optional[PlayerIdentity]:
        player_id = self._external.get(external_id)
        if player_id is None:
            return None
        return self._by_id.get(player_id)

    def insert(self, identity: PlayerIdentity) -> None:
        """Add a new identity. Caller must hold the bucket lock for its name."""

        self._by_id[identity.player_id] = identity
        bucket = self._buckets.get(identity.normalized_name, ())
        self._buckets[identity.normalized_name] = bucket + (identity,)

    def bind_external(self, external_id: str, player_id: str) -> bool:
        """Bind an external id; returns False if it is already bound elsewhere."""

        existing = self._external.setdefault(external_id, player_id)
        if existing != player_id:
            logger.warning(
                "External id %s already bound to %s; refusing rebind to %s", external_id, existing, player_id
            )
            return False
        return True

    def __len__(self) -> int:
        return len(self._by_id)

    def snapshot(self) -> tuple[List[PlayerIdentity], Dict[str, str]]:
        identities = sorted(self._by_id.values(), key=lambda item: item.player_id)
        return identities, dict(self._external)

    def restore(self, identities: Iterable[PlayerIdentity], bindings: Dict[str, str]) -> None:
        """Load a snapshot into this store, keeping anything already present."""

        for identity in identities:
            with self.bucket_lock(identity.normalized_name):
                if identity.player_id not in self._by_id:
                    self.insert(identity)
        for external_id, player_id in bindings.items():
            if player_id in self._by_id:
                self.bind_external(external_id, player_id)

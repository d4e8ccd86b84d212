"""Reconcile player hints from different providers onto one canonical identity."""

from __future__ import annotations

import hashlib
import logging
import re
from dataclasses import dataclass
from typing import List, Optional

from ffusion.config import canonical_position
from ffusion.errors import PlayerNotFound
from ffusion.ingest.common import canonical_team
from ffusion.models import PlayerHint, PlayerIdentity

from .store import IdentityStore


logger = logging.getLogger(__name__)

_NAME_SUFFIX_TOKENS = {"jr", "sr", "ii", "iii", "iv", "v"}


def normalize_name(name: str) -> str:
    """Lower-case, drop punctuation and generational suffixes, collapse whitespace.

    "A.J. Brown", "AJ Brown" and "aj brown" all normalize to "aj brown".
    """

    lowered = name.lower()
    joined = re.sub(r"[.'’`]", "", lowered)
    cleaned = re.sub(r"[^a-z0-9]+", " ", joined)
    tokens = [tok for tok in cleaned.split() if tok not in _NAME_SUFFIX_TOKENS]
    normalized = " ".join(tokens)
    if not normalized:
        raise ValueError(f"name {name!r} has nothing left after normalization")
    return normalized


def _identity_id(position: str, normalized: str, team: str, ordinal: int) -> str:
    digest = hashlib.sha1(f"{position}|{normalized}|{team}|{ordinal}".encode("utf-8")).hexdigest()
    return f"{position.lower()}-{normalized.replace(' ', '-')}-{digest[:8]}"


@dataclass(frozen=True)
class Resolution:
    identity: PlayerIdentity
    matched_by: str
    created: bool = False
    ambiguous: bool = False


class IdentityResolver:
    def __init__(self, store: IdentityStore):
        self.store = store

    def resolve(self, hint: PlayerHint) -> PlayerIdentity:
        return self.resolve_detailed(hint).identity

    def resolve_detailed(self, hint: PlayerHint) -> Resolution:
        """Resolve ``hint`` and report how the identity was found.

        A single same-position candidate is returned whatever the hint's team, so
        a traded player keeps one identity and two same-named players at one
        position share one unless the store already holds both (for example
        after ``IdentityStore.restore``). The team only narrows a bucket with
        several candidates; when it cannot, a new identity is created and
        flagged ``ambiguous``.
        """

        if hint.external_id:
            bound = self.store.by_external(hint.external_id)
            if bound is not None:
                return Resolution(identity=bound, matched_by="external_id")

        normalized = normalize_name(hint.name)
        position = canonical_position(hint.position) if hint.position else None
        if hint.position and position is None:
            raise PlayerNotFound(hint.name, f"unsupported position {hint.position!r}")
        team = canonical_team(hint.team) if hint.team else ""

        with self.store.bucket_lock(normalized):
            if hint.external_id:
                bound = self.store.by_external(hint.external_id)
                if bound is not None:
                    return Resolution(identity=bound, matched_by="external_id")

            bucket = self.store.candidates(normalized)
            candidates = [item for item in bucket if position is None or item.position == position]
            match: Optional[PlayerIdentity] = None
            ambiguous = False
            if len(candidates) == 1:
                match = candidates[0]
            elif len(candidates) > 1:
                match = self._by_team(candidates, team)
                ambiguous = match is None

            if match is not None:
                if hint.external_id:
                    self.store.bind_external(hint.external_id, match.player_id)
                return Resolution(identity=match, matched_by="name")

            if position is None:
                reason = "ambiguous without a position" if ambiguous else "no identity and no position to create one"
                raise PlayerNotFound(hint.name, reason)

            if ambiguous:
                logger.warning(
                    "Ambiguous identity for %r (%s, team=%s): %d candidates; creating a new identity",
                    hint.name,
                    position,
                    team or "?",
                    len(candidates),
                )
            ordinal = sum(1 for item in bucket if item.position == position and item.team == team)
            identity = PlayerIdentity(
                player_id=_identity_id(position, normalized, team, ordinal),
                name=" ".join(hint.name.split()),
                normalized_name=normalized,
                position=position,
                team=team,
            )
            self.store.insert(identity)
            if hint.external_id:
                self.store.bind_external(hint.external_id, identity.player_id)
            return Resolution(identity=identity, matched_by="created", created=True, ambiguous=ambiguous)

    @staticmethod
    def _by_team(candidates: List[PlayerIdentity], team: str) -> Optional[PlayerIdentity]:
        # A teamless hint only matches an identity that was itself created without a team.
        narrowed = [item for item in candidates if item.team == team]
        if len(narrowed) == 1:
            return narrowed[0]
        return None

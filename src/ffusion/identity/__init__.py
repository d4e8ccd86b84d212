"""Identity index and resolver."""

from .resolver import IdentityResolver, Resolution, normalize_name
from .store import IdentityStore

__all__ = [
    "IdentityResolver",
    "IdentityStore",
    "Resolution",
    "normalize_name",
]

# collabart/identity.py
"""
Identity registry.

Maps an opaque caller identifier to an artist profile. A profile is
created once by registration and never changes afterwards.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .errors import ErrorKind, Result
from .ids import ArtistId

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Artist:
    """
    A registered artist.

    Attributes:
        caller_id: Opaque identity key of the caller
        name: Display name supplied at registration
        registered: Always True once the artist is present
        registered_at: Timestamp of registration
    """
    caller_id: ArtistId
    name: str
    registered: bool = True
    registered_at: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "caller_id": self.caller_id,
            "name": self.name,
            "registered": self.registered,
            "registered_at": self.registered_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Artist":
        return cls(
            caller_id=ArtistId(data["caller_id"]),
            name=data["name"],
            registered=data.get("registered", True),
            registered_at=data.get("registered_at", time.time()),
        )


class IdentityRegistry:
    """In-memory store of registered artists."""

    def __init__(self):
        self._artists: Dict[ArtistId, Artist] = {}

    def register(self, caller_id: ArtistId, name: str) -> Result:
        """
        Register a caller as an artist.

        Fails with ARTIST_EXISTS if the caller is already registered; the
        stored profile is left untouched in that case.
        """
        if caller_id in self._artists:
            return Result.failure(ErrorKind.ARTIST_EXISTS)

        self._artists[caller_id] = Artist(caller_id=caller_id, name=name)
        logger.debug(f"Registered artist {caller_id!r}")
        return Result.success(True)

    def is_registered(self, caller_id: ArtistId) -> bool:
        return caller_id in self._artists

    def get(self, caller_id: ArtistId) -> Optional[Artist]:
        """Get an artist by caller id."""
        return self._artists.get(caller_id)

    def list(self) -> List[Artist]:
        """List all artists in registration order."""
        return list(self._artists.values())

    def load(self, artists: List[Artist]) -> None:
        """Replace the store contents (used when restoring snapshots)."""
        self._artists = {a.caller_id: a for a in artists}

    def __contains__(self, caller_id: str) -> bool:
        return caller_id in self._artists

    def __len__(self) -> int:
        return len(self._artists)

    def __iter__(self):
        return iter(self._artists.values())

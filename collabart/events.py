# collabart/events.py
"""
Activities and transfer events.

Every applied transition is recorded as an Activity in an append-only log,
giving an audit trail of who did what to which object. Key activity types:
- Register: caller registered as an artist
- Create: artist created an artwork
- Contribute: artist contributed to an artwork
- Finalize: creator locked an artwork
- Mint: caller minted the NFT for an artwork
- Transfer: caller bought an NFT

Purchases additionally produce an OwnershipTransferRequested event for the
external party that settles payment.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from .ids import ArtistId, ArtworkId, NftId


class ActivityType(str, Enum):
    REGISTER = "Register"
    CREATE = "Create"
    CONTRIBUTE = "Contribute"
    FINALIZE = "Finalize"
    MINT = "Mint"
    TRANSFER = "Transfer"


def _timestamp() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


@dataclass
class Activity:
    """
    A recorded transition.

    Attributes:
        sequence: Position in the log, starting at 1
        activity_type: What happened
        actor: Caller that performed the transition
        object_data: The affected object and transition details
        published: ISO timestamp
    """
    sequence: int
    activity_type: ActivityType
    actor: ArtistId
    object_data: Dict[str, Any]
    published: str = field(default_factory=_timestamp)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sequence": self.sequence,
            "activity_type": self.activity_type.value,
            "actor": self.actor,
            "object_data": self.object_data,
            "published": self.published,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Activity":
        return cls(
            sequence=data["sequence"],
            activity_type=ActivityType(data["activity_type"]),
            actor=ArtistId(data["actor"]),
            object_data=data["object_data"],
            published=data.get("published", ""),
        )


class ActivityLog:
    """Append-only log of applied transitions."""

    def __init__(self):
        self._activities: List[Activity] = []

    def append(self, activity_type: ActivityType, actor: ArtistId, **object_data: Any) -> Activity:
        """Record an activity and return it."""
        activity = Activity(
            sequence=len(self._activities) + 1,
            activity_type=activity_type,
            actor=actor,
            object_data=object_data,
        )
        self._activities.append(activity)
        return activity

    def list(self) -> List[Activity]:
        return list(self._activities)

    def since(self, sequence: int) -> List[Activity]:
        """Activities recorded after the given sequence number."""
        return self._activities[sequence:] if sequence > 0 else list(self._activities)

    def find_by_actor(self, actor: ArtistId) -> List[Activity]:
        return [a for a in self._activities if a.actor == actor]

    def find_by_type(self, activity_type: ActivityType) -> List[Activity]:
        return [a for a in self._activities if a.activity_type == activity_type]

    def find_by_artwork(self, artwork_id: ArtworkId) -> List[Activity]:
        """Find activities touching an artwork."""
        return [a for a in self._activities if a.object_data.get("artwork_id") == artwork_id]

    def load(self, activities: List[Activity]) -> None:
        """Replace the log contents (used when restoring snapshots)."""
        self._activities = list(activities)

    def __len__(self) -> int:
        return len(self._activities)

    def __iter__(self):
        return iter(self._activities)


@dataclass(frozen=True)
class OwnershipTransferRequested:
    """
    Emitted after an NFT purchase is recorded.

    The engine has already moved ownership; a settlement service listening
    for these events is expected to collect `price` from `new_owner` and pay
    `previous_owner`.
    """
    nft_id: NftId
    artwork_id: ArtworkId
    previous_owner: ArtistId
    new_owner: ArtistId
    price: int
    activity_sequence: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "ownership-transfer-requested",
            "nft_id": self.nft_id,
            "artwork_id": self.artwork_id,
            "previous_owner": self.previous_owner,
            "new_owner": self.new_owner,
            "price": self.price,
            "activity_sequence": self.activity_sequence,
        }


# Transfer listener callback type
TransferListener = Callable[[OwnershipTransferRequested], None]

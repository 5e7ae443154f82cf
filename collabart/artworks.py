# collabart/artworks.py
"""
Artwork ledger.

Tracks collaborative artworks and their weighted contributions.

An artwork moves through two states:

    open       contributions may be appended by any registered artist
    finalized  collaborator and contribution data are frozen; the
               artwork becomes eligible for a single NFT mint

Invariants held for every artwork at all times:
- len(collaborators) == len(contributions)
- total_contributions == sum(contributions)
- collaborators[0] == creator
"""

from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .errors import ErrorKind, Result
from .identity import IdentityRegistry
from .ids import ArtistId, ArtworkId, IdSequence, NftId

# Full authorship credit granted to the creator at inception
INITIAL_CONTRIBUTION = 100


@dataclass
class Artwork:
    """
    A collaborative artwork.

    Attributes:
        artwork_id: Sequence id assigned at creation
        title: Artwork title
        description: Free-form description
        creator: Artist who created the artwork (never changes)
        collaborators: Contributing artists, creator first; repeats allowed
        contributions: Contribution weight per collaborators entry
        total_contributions: Sum of contributions
        is_finalized: Set once by the creator, never reverts
        nft_id: NFT minted for this artwork, if any
    """
    artwork_id: ArtworkId
    title: str
    description: str
    creator: ArtistId
    collaborators: List[ArtistId] = field(default_factory=list)
    contributions: List[int] = field(default_factory=list)
    total_contributions: int = 0
    is_finalized: bool = False
    nft_id: Optional[NftId] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "artwork_id": self.artwork_id,
            "title": self.title,
            "description": self.description,
            "creator": self.creator,
            "collaborators": list(self.collaborators),
            "contributions": list(self.contributions),
            "total_contributions": self.total_contributions,
            "is_finalized": self.is_finalized,
            "nft_id": self.nft_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Artwork":
        nft_id = data.get("nft_id")
        return cls(
            artwork_id=ArtworkId(data["artwork_id"]),
            title=data["title"],
            description=data.get("description", ""),
            creator=ArtistId(data["creator"]),
            collaborators=[ArtistId(c) for c in data["collaborators"]],
            contributions=list(data["contributions"]),
            total_contributions=data["total_contributions"],
            is_finalized=data.get("is_finalized", False),
            nft_id=NftId(nft_id) if nft_id is not None else None,
        )

    @property
    def has_nft(self) -> bool:
        return self.nft_id is not None

    def invariant_errors(self) -> List[str]:
        """Return descriptions of any broken invariants (empty if valid)."""
        errors = []
        if len(self.collaborators) != len(self.contributions):
            errors.append(
                f"Artwork {self.artwork_id}: {len(self.collaborators)} collaborators "
                f"but {len(self.contributions)} contributions"
            )
        if self.total_contributions != sum(self.contributions):
            errors.append(
                f"Artwork {self.artwork_id}: total {self.total_contributions} "
                f"!= sum {sum(self.contributions)}"
            )
        if not self.collaborators or self.collaborators[0] != self.creator:
            errors.append(f"Artwork {self.artwork_id}: first collaborator is not the creator")
        return errors


class ArtworkLedger:
    """
    Store of artworks keyed by ArtworkId.

    Authorization of creators and contributors is checked against the
    identity registry. Ids come from a sequence owned by the engine.
    """

    def __init__(
        self,
        identities: IdentityRegistry,
        sequence: IdSequence,
        initial_contribution: int = INITIAL_CONTRIBUTION,
    ):
        self.identities = identities
        self.sequence = sequence
        self.initial_contribution = initial_contribution
        self._artworks: "OrderedDict[ArtworkId, Artwork]" = OrderedDict()

    def create(self, creator: ArtistId, title: str, description: str) -> Result:
        """
        Create an artwork owned by a registered artist.

        Returns:
            Result carrying the new ArtworkId, or NOT_REGISTERED
        """
        if not self.identities.is_registered(creator):
            return Result.failure(ErrorKind.NOT_REGISTERED)

        artwork_id = ArtworkId(self.sequence.allocate())
        self._artworks[artwork_id] = Artwork(
            artwork_id=artwork_id,
            title=title,
            description=description,
            creator=creator,
            collaborators=[creator],
            contributions=[self.initial_contribution],
            total_contributions=self.initial_contribution,
        )
        return Result.success(artwork_id)

    def add_contribution(self, caller: ArtistId, artwork_id: ArtworkId, amount: int) -> Result:
        """
        Record a contribution by a registered artist to an open artwork.

        The same artist may contribute several times; each contribution is
        appended as its own entry.
        """
        if not self.identities.is_registered(caller):
            return Result.failure(ErrorKind.NOT_REGISTERED)

        artwork = self._artworks.get(artwork_id)
        if artwork is None:
            return Result.failure(ErrorKind.ARTWORK_NOT_FOUND)
        if artwork.is_finalized:
            return Result.failure(ErrorKind.ARTWORK_FINALIZED)

        artwork.collaborators.append(caller)
        artwork.contributions.append(amount)
        artwork.total_contributions += amount
        return Result.success(True)

    def finalize(self, caller: ArtistId, artwork_id: ArtworkId) -> Result:
        """Lock an artwork. Only its creator may do this, and only once."""
        artwork = self._artworks.get(artwork_id)
        if artwork is None:
            return Result.failure(ErrorKind.ARTWORK_NOT_FOUND)
        if artwork.creator != caller:
            return Result.failure(ErrorKind.NOT_CREATOR)
        if artwork.is_finalized:
            return Result.failure(ErrorKind.ALREADY_FINALIZED)

        artwork.is_finalized = True
        return Result.success(True)

    def attach_nft(self, artwork_id: ArtworkId, nft_id: NftId) -> None:
        """Link a freshly minted NFT to its artwork. Called by the NFT registry."""
        artwork = self._artworks[artwork_id]
        if artwork.nft_id is not None:
            raise ValueError(f"Artwork {artwork_id} already has NFT {artwork.nft_id}")
        artwork.nft_id = nft_id

    def get(self, artwork_id: ArtworkId) -> Optional[Artwork]:
        """Get an artwork by id."""
        return self._artworks.get(artwork_id)

    def list(self) -> List[Artwork]:
        """List all artworks in creation order."""
        return list(self._artworks.values())

    def find_by_creator(self, creator: ArtistId) -> List[Artwork]:
        return [a for a in self._artworks.values() if a.creator == creator]

    def find_by_collaborator(self, artist: ArtistId) -> List[Artwork]:
        """Find artworks the artist appears on (creators included)."""
        return [a for a in self._artworks.values() if artist in a.collaborators]

    def contribution_shares(self, artwork_id: ArtworkId) -> Optional[Dict[ArtistId, int]]:
        """
        Summed contribution weight per distinct collaborator.

        Repeat contributions by one artist are folded together. Weights are
        summed, not normalized. Returns None if the artwork does not exist.
        """
        artwork = self._artworks.get(artwork_id)
        if artwork is None:
            return None

        shares: Dict[ArtistId, int] = {}
        for artist, amount in zip(artwork.collaborators, artwork.contributions):
            shares[artist] = shares.get(artist, 0) + amount
        return shares

    def load(self, artworks: List[Artwork]) -> None:
        """Replace the store contents (used when restoring snapshots)."""
        self._artworks = OrderedDict((a.artwork_id, a) for a in artworks)

    def __contains__(self, artwork_id: int) -> bool:
        return artwork_id in self._artworks

    def __len__(self) -> int:
        return len(self._artworks)

    def __iter__(self):
        return iter(self._artworks.values())

# collabart/nfts.py
"""
NFT registry.

Each finalized artwork can back exactly one NFT. The registry records who
owns it and the price fixed at mint time. Purchases only record the change
of owner; settling the payment is left to whoever listens for transfer
events on the engine.
"""

from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .artworks import ArtworkLedger
from .errors import ErrorKind, Result
from .ids import ArtistId, ArtworkId, IdSequence, NftId


@dataclass
class Nft:
    """
    A minted token.

    Attributes:
        nft_id: Sequence id assigned at mint
        artwork_id: The finalized artwork this token represents
        owner: Current owner (the minter until the first purchase)
        price: Price set at mint
    """
    nft_id: NftId
    artwork_id: ArtworkId
    owner: ArtistId
    price: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nft_id": self.nft_id,
            "artwork_id": self.artwork_id,
            "owner": self.owner,
            "price": self.price,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Nft":
        return cls(
            nft_id=NftId(data["nft_id"]),
            artwork_id=ArtworkId(data["artwork_id"]),
            owner=ArtistId(data["owner"]),
            price=data["price"],
        )


class NftRegistry:
    """Store of NFTs keyed by NftId."""

    def __init__(self, artworks: ArtworkLedger, sequence: IdSequence):
        self.artworks = artworks
        self.sequence = sequence
        self._nfts: "OrderedDict[NftId, Nft]" = OrderedDict()

    def mint(self, caller: ArtistId, artwork_id: ArtworkId, price: int) -> Result:
        """
        Mint the NFT for a finalized artwork.

        Any caller may mint; the minter becomes the first owner.

        Returns:
            Result carrying the new NftId, or ARTWORK_NOT_FOUND,
            NOT_FINALIZED, NFT_ALREADY_MINTED
        """
        artwork = self.artworks.get(artwork_id)
        if artwork is None:
            return Result.failure(ErrorKind.ARTWORK_NOT_FOUND)
        if not artwork.is_finalized:
            return Result.failure(ErrorKind.NOT_FINALIZED)
        if artwork.has_nft:
            return Result.failure(ErrorKind.NFT_ALREADY_MINTED)

        nft_id = NftId(self.sequence.allocate())
        self._nfts[nft_id] = Nft(nft_id=nft_id, artwork_id=artwork_id, owner=caller, price=price)
        self.artworks.attach_nft(artwork_id, nft_id)
        return Result.success(nft_id)

    def buy(self, caller: ArtistId, nft_id: NftId) -> Result:
        """
        Record a purchase: the caller becomes the owner.

        No payment is taken and the buyer may already be the owner.
        The success value is the previous owner.
        """
        nft = self._nfts.get(nft_id)
        if nft is None:
            return Result.failure(ErrorKind.NFT_NOT_FOUND)

        previous = nft.owner
        nft.owner = caller
        return Result.success(previous)

    def get(self, nft_id: NftId) -> Optional[Nft]:
        """Get an NFT by id."""
        return self._nfts.get(nft_id)

    def list(self) -> List[Nft]:
        return list(self._nfts.values())

    def find_by_owner(self, owner: ArtistId) -> List[Nft]:
        """Find NFTs currently held by an owner."""
        return [n for n in self._nfts.values() if n.owner == owner]

    def find_by_artwork(self, artwork_id: ArtworkId) -> Optional[Nft]:
        """Find the NFT minted for an artwork, if any."""
        for nft in self._nfts.values():
            if nft.artwork_id == artwork_id:
                return nft
        return None

    def load(self, nfts: List[Nft]) -> None:
        """Replace the store contents (used when restoring snapshots)."""
        self._nfts = OrderedDict((n.nft_id, n) for n in nfts)

    def __contains__(self, nft_id: int) -> bool:
        return nft_id in self._nfts

    def __len__(self) -> int:
        return len(self._nfts)

    def __iter__(self):
        return iter(self._nfts.values())

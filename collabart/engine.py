# collabart/engine.py
"""
Transition engine.

The engine is the only entry point for changing registry state:

1. register_artist   caller becomes an artist
2. create_artwork    artist opens a new artwork
3. add_contribution  artist adds weighted credit to an open artwork
4. finalize_artwork  creator locks the artwork
5. mint_nft          anyone mints the single NFT of a finalized artwork
6. buy_nft           caller becomes the owner of an NFT

Each operation either applies completely or leaves every store untouched,
and returns a Result instead of raising. Id counters live on the engine
instance, so independent engines never share state.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from .artworks import Artwork, ArtworkLedger
from .config import EngineConfig
from .errors import Result, SnapshotError
from .events import (
    Activity,
    ActivityLog,
    ActivityType,
    OwnershipTransferRequested,
    TransferListener,
)
from .identity import Artist, IdentityRegistry
from .ids import ArtistId, ArtworkId, IdSequence, NftId
from .nfts import Nft, NftRegistry

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = "1.0"


def _reject_duplicates(kind: str, ids: List[Any]) -> None:
    seen = set()
    for object_id in ids:
        if object_id in seen:
            raise SnapshotError(f"Duplicate {kind} id in snapshot: {object_id!r}")
        seen.add(object_id)


class Engine:
    """
    Registry state-transition engine.

    Holds the identity registry, artwork ledger, NFT registry, the two id
    sequences and the activity log. Not thread-safe: concurrent front ends
    must serialize calls (see server.CollabServer).
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        self._artwork_ids = IdSequence(self.config.first_artwork_id)
        self._nft_ids = IdSequence(self.config.first_nft_id)

        self.identities = IdentityRegistry()
        self.artworks = ArtworkLedger(
            self.identities,
            self._artwork_ids,
            initial_contribution=self.config.initial_contribution,
        )
        self.nfts = NftRegistry(self.artworks, self._nft_ids)
        self.activities = ActivityLog()
        self._transfer_listeners: List[TransferListener] = []

    @property
    def next_artwork_id(self) -> int:
        return self._artwork_ids.peek()

    @property
    def next_nft_id(self) -> int:
        return self._nft_ids.peek()

    def add_transfer_listener(self, listener: TransferListener):
        """Register a callback for ownership-transfer-requested events."""
        self._transfer_listeners.append(listener)

    def remove_transfer_listener(self, listener: TransferListener):
        self._transfer_listeners.remove(listener)

    def _notify_transfer(self, event: OwnershipTransferRequested):
        """Deliver a transfer event to every listener."""
        for listener in list(self._transfer_listeners):
            try:
                listener(event)
            except Exception as e:
                logger.warning(f"Transfer listener error for NFT {event.nft_id}: {e}")

    def _rejected(self, operation: str, caller: ArtistId, result: Result) -> Result:
        logger.debug(
            f"{operation} by {caller!r} rejected: {result.error.name} ({result.code})"
        )
        return result

    # ---- operations ----

    def register_artist(self, caller: ArtistId, name: str) -> Result:
        """Register the caller as an artist. Success value: True."""
        result = self.identities.register(caller, name)
        if not result.ok:
            return self._rejected("register-artist", caller, result)

        self.activities.append(ActivityType.REGISTER, caller, name=name)
        logger.info(f"Registered artist {caller!r} ({name})")
        return result

    def create_artwork(self, caller: ArtistId, title: str, description: str) -> Result:
        """Create an artwork. Success value: the new ArtworkId."""
        result = self.artworks.create(caller, title, description)
        if not result.ok:
            return self._rejected("create-artwork", caller, result)

        self.activities.append(ActivityType.CREATE, caller, artwork_id=result.value, title=title)
        logger.info(f"Artist {caller!r} created artwork {result.value}: {title}")
        return result

    def add_contribution(self, caller: ArtistId, artwork_id: ArtworkId, amount: int) -> Result:
        """Append a contribution to an open artwork. Success value: True."""
        result = self.artworks.add_contribution(caller, artwork_id, amount)
        if not result.ok:
            return self._rejected("add-contribution", caller, result)

        self.activities.append(
            ActivityType.CONTRIBUTE, caller, artwork_id=artwork_id, amount=amount
        )
        logger.info(f"Artist {caller!r} contributed {amount} to artwork {artwork_id}")
        return result

    def finalize_artwork(self, caller: ArtistId, artwork_id: ArtworkId) -> Result:
        """Lock an artwork's contributions. Success value: True."""
        result = self.artworks.finalize(caller, artwork_id)
        if not result.ok:
            return self._rejected("finalize-artwork", caller, result)

        self.activities.append(ActivityType.FINALIZE, caller, artwork_id=artwork_id)
        logger.info(f"Artwork {artwork_id} finalized by {caller!r}")
        return result

    def mint_nft(self, caller: ArtistId, artwork_id: ArtworkId, price: int) -> Result:
        """Mint the NFT for a finalized artwork. Success value: the new NftId."""
        result = self.nfts.mint(caller, artwork_id, price)
        if not result.ok:
            return self._rejected("mint-nft", caller, result)

        self.activities.append(
            ActivityType.MINT, caller, artwork_id=artwork_id, nft_id=result.value, price=price
        )
        logger.info(f"Minted NFT {result.value} for artwork {artwork_id} (owner {caller!r})")
        return result

    def buy_nft(self, caller: ArtistId, nft_id: NftId) -> Result:
        """
        Record the caller as the new owner of an NFT. Success value: True.

        Payment is not handled here. Listeners receive an
        OwnershipTransferRequested event once ownership has moved.
        """
        result = self.nfts.buy(caller, nft_id)
        if not result.ok:
            return self._rejected("buy-nft", caller, result)

        previous_owner = result.value
        nft = self.nfts.get(nft_id)
        activity = self.activities.append(
            ActivityType.TRANSFER,
            caller,
            nft_id=nft_id,
            artwork_id=nft.artwork_id,
            previous_owner=previous_owner,
            price=nft.price,
        )
        logger.info(f"NFT {nft_id} transferred from {previous_owner!r} to {caller!r}")

        self._notify_transfer(self._transfer_event(activity))
        return Result.success(True)

    # ---- queries ----

    def is_registered(self, caller: ArtistId) -> bool:
        return self.identities.is_registered(caller)

    def get_artist(self, caller: ArtistId) -> Optional[Artist]:
        return self.identities.get(caller)

    def get_artwork(self, artwork_id: ArtworkId) -> Optional[Artwork]:
        return self.artworks.get(artwork_id)

    def get_nft(self, nft_id: NftId) -> Optional[Nft]:
        return self.nfts.get(nft_id)

    def _transfer_event(self, activity: Activity) -> OwnershipTransferRequested:
        data = activity.object_data
        price = data.get("price")
        if price is None:
            nft = self.nfts.get(data["nft_id"])
            price = nft.price if nft is not None else 0
        return OwnershipTransferRequested(
            nft_id=data["nft_id"],
            artwork_id=data["artwork_id"],
            previous_owner=data["previous_owner"],
            new_owner=activity.actor,
            price=price,
            activity_sequence=activity.sequence,
        )

    def transfer_requests(self, since: int = 0) -> List[OwnershipTransferRequested]:
        """
        Transfer events for purchases recorded after activity `since`.

        Rebuilt from the activity log, so a settlement poller can resume
        from its last activity_sequence after a restart.
        """
        return [
            self._transfer_event(activity)
            for activity in self.activities.since(since)
            if activity.activity_type == ActivityType.TRANSFER
        ]

    def check_invariants(self) -> List[str]:
        """
        Check cross-store consistency.

        Returns a list of violation messages; empty means the state is
        consistent.
        """
        errors = []
        for artwork in self.artworks:
            errors.extend(artwork.invariant_errors())
            if artwork.artwork_id >= self.next_artwork_id:
                errors.append(f"Artwork {artwork.artwork_id} is not below the next artwork id")
            if artwork.nft_id is not None:
                nft = self.nfts.get(artwork.nft_id)
                if nft is None or nft.artwork_id != artwork.artwork_id:
                    errors.append(
                        f"Artwork {artwork.artwork_id} references NFT {artwork.nft_id} "
                        f"that does not point back"
                    )

        for nft in self.nfts:
            if nft.nft_id >= self.next_nft_id:
                errors.append(f"NFT {nft.nft_id} is not below the next NFT id")
            artwork = self.artworks.get(nft.artwork_id)
            if artwork is None:
                errors.append(f"NFT {nft.nft_id} references missing artwork {nft.artwork_id}")
            elif not artwork.is_finalized:
                errors.append(f"NFT {nft.nft_id} minted for unfinalized artwork {nft.artwork_id}")
            elif artwork.nft_id != nft.nft_id:
                errors.append(
                    f"NFT {nft.nft_id} not linked from artwork {nft.artwork_id}"
                )
        return errors

    # ---- snapshots ----

    def snapshot(self) -> Dict[str, Any]:
        """Serialize the full engine state to a JSON-compatible dict."""
        return {
            "version": SNAPSHOT_VERSION,
            "next_artwork_id": self.next_artwork_id,
            "next_nft_id": self.next_nft_id,
            "artists": [a.to_dict() for a in self.identities.list()],
            "artworks": [a.to_dict() for a in self.artworks.list()],
            "nfts": [n.to_dict() for n in self.nfts.list()],
            "activities": [a.to_dict() for a in self.activities.list()],
        }

    @classmethod
    def from_snapshot(
        cls,
        data: Dict[str, Any],
        config: Optional[EngineConfig] = None,
    ) -> "Engine":
        """
        Rebuild an engine from snapshot().

        Raises:
            SnapshotError: if the snapshot is malformed or inconsistent
        """
        if not isinstance(data, dict):
            raise SnapshotError(f"Snapshot must be a mapping, got {type(data).__name__}")
        version = data.get("version")
        if version != SNAPSHOT_VERSION:
            raise SnapshotError(f"Unsupported snapshot version: {version!r}")

        engine = cls(config)
        try:
            artists = [Artist.from_dict(a) for a in data.get("artists", [])]
            artworks = [Artwork.from_dict(a) for a in data.get("artworks", [])]
            nfts = [Nft.from_dict(n) for n in data.get("nfts", [])]
            _reject_duplicates("artist", [a.caller_id for a in artists])
            _reject_duplicates("artwork", [a.artwork_id for a in artworks])
            _reject_duplicates("NFT", [n.nft_id for n in nfts])

            engine.identities.load(artists)
            engine.artworks.load(artworks)
            engine.nfts.load(nfts)
            engine.activities.load([Activity.from_dict(a) for a in data.get("activities", [])])
            engine._artwork_ids.advance_to(data["next_artwork_id"])
            engine._nft_ids.advance_to(data["next_nft_id"])
            errors = engine.check_invariants()
        except (KeyError, TypeError, ValueError) as e:
            raise SnapshotError(f"Invalid snapshot: {e}") from e

        if errors:
            raise SnapshotError(f"Inconsistent snapshot: {'; '.join(errors)}")
        return engine

    def save(self, path: Path | str) -> None:
        """Write a snapshot to a JSON file."""
        with open(path, "w") as f:
            json.dump(self.snapshot(), f, indent=2)

    @classmethod
    def load(cls, path: Path | str, config: Optional[EngineConfig] = None) -> "Engine":
        """Load an engine from a JSON snapshot file."""
        try:
            with open(path) as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise SnapshotError(f"Invalid snapshot file {path}: {e}") from e
        return cls.from_snapshot(data, config)

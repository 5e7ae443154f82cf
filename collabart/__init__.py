# collabart - State-transition engine for a collaborative digital-art registry
#
# Artists register, create artworks, record weighted contributions from
# collaborators, finalize artworks, mint one NFT per finalized artwork and
# transfer NFT ownership by purchase.
#
# Core concepts:
# - IdentityRegistry: callers registered as artists
# - ArtworkLedger: artworks and their contributions
# - NftRegistry: NFTs and their owners
# - Engine: the only entry point for state changes; returns Results
# - Commands: named operations with stable wire codes (101/102/103)

from .ids import ArtistId, ArtworkId, NftId, IdSequence
from .errors import (
    ErrorCode,
    ErrorKind,
    Result,
    WireResult,
    CommandError,
    ConfigError,
    SnapshotError,
)
from .identity import Artist, IdentityRegistry
from .artworks import Artwork, ArtworkLedger
from .nfts import Nft, NftRegistry
from .events import Activity, ActivityLog, ActivityType, OwnershipTransferRequested
from .config import EngineConfig
from .engine import Engine
from .commands import Command, register_command, get_command, list_commands, dispatch

__all__ = [
    # Identifiers
    "ArtistId",
    "ArtworkId",
    "NftId",
    "IdSequence",
    # Errors
    "ErrorCode",
    "ErrorKind",
    "Result",
    "WireResult",
    "CommandError",
    "ConfigError",
    "SnapshotError",
    # Stores
    "Artist",
    "IdentityRegistry",
    "Artwork",
    "ArtworkLedger",
    "Nft",
    "NftRegistry",
    # Events
    "Activity",
    "ActivityLog",
    "ActivityType",
    "OwnershipTransferRequested",
    # Engine
    "EngineConfig",
    "Engine",
    "Command",
    "register_command",
    "get_command",
    "list_commands",
    "dispatch",
]

__version__ = "0.1.0"

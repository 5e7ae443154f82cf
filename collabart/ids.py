# collabart/ids.py
"""
Typed identifier keys.

Each store is keyed by its own identifier type so an artwork id is never
looked up in the NFT registry by mistake (at least not without a type
checker noticing).
"""

from typing import NewType

ArtistId = NewType("ArtistId", str)
ArtworkId = NewType("ArtworkId", int)
NftId = NewType("NftId", int)


class IdSequence:
    """
    Monotonic id allocator.

    Ids are handed out in strictly increasing order and never reused.
    The sequence only advances when the caller commits an allocation.
    """

    def __init__(self, start: int = 1):
        if start < 1:
            raise ValueError(f"Sequence must start at 1 or above, got {start}")
        self._next = start

    def peek(self) -> int:
        """The id the next allocation will return."""
        return self._next

    def allocate(self) -> int:
        value = self._next
        self._next += 1
        return value

    def advance_to(self, value: int) -> None:
        """Move the sequence forward so the next allocation returns `value`."""
        if value < self._next:
            raise ValueError(f"Cannot move sequence back from {self._next} to {value}")
        self._next = value

    def __repr__(self) -> str:
        return f"IdSequence(next={self._next})"

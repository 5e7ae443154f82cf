# collabart/errors.py
"""
Error kinds and result values for engine operations.

Engine operations never raise for a rejected transition. They return a
Result that either carries the success value or an ErrorKind. Each kind
projects onto one of three stable wire codes:

    101  NotFound       referenced artwork/NFT does not exist
    102  Unauthorized   caller lacks permission, or the transition is not
                        legal in the current state
    103  AlreadyExists  duplicate registration or duplicate mint

Exceptions are kept for caller bugs and transport faults (CommandError,
ConfigError, SnapshotError).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Stable numeric codes exposed at the command boundary."""
    NOT_FOUND = 101
    UNAUTHORIZED = 102
    ALREADY_EXISTS = 103

    @property
    def label(self) -> str:
        return _LABELS[self]


_LABELS = {
    ErrorCode.NOT_FOUND: "NotFound",
    ErrorCode.UNAUTHORIZED: "Unauthorized",
    ErrorCode.ALREADY_EXISTS: "AlreadyExists",
}


class ErrorKind(Enum):
    """Why an operation was rejected."""
    ARTIST_EXISTS = ("artist already registered", ErrorCode.ALREADY_EXISTS)
    NOT_REGISTERED = ("caller is not a registered artist", ErrorCode.UNAUTHORIZED)
    ARTWORK_NOT_FOUND = ("artwork not found", ErrorCode.NOT_FOUND)
    ARTWORK_FINALIZED = ("artwork is finalized", ErrorCode.UNAUTHORIZED)
    NOT_CREATOR = ("caller is not the artwork creator", ErrorCode.UNAUTHORIZED)
    ALREADY_FINALIZED = ("artwork already finalized", ErrorCode.UNAUTHORIZED)
    NOT_FINALIZED = ("artwork not finalized", ErrorCode.UNAUTHORIZED)
    NFT_ALREADY_MINTED = ("artwork already has an NFT", ErrorCode.ALREADY_EXISTS)
    NFT_NOT_FOUND = ("NFT not found", ErrorCode.NOT_FOUND)

    def __init__(self, message: str, code: ErrorCode):
        self.message = message
        self.code = code


@dataclass(frozen=True)
class Result:
    """
    Outcome of an engine operation.

    Attributes:
        ok: True if the operation was applied
        value: Success value (True, or a newly allocated id)
        error: Why the operation was rejected (None on success)
    """
    ok: bool
    value: Any = None
    error: Optional[ErrorKind] = None

    @classmethod
    def success(cls, value: Any = True) -> "Result":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: ErrorKind) -> "Result":
        return cls(ok=False, error=error)

    @property
    def code(self) -> Optional[int]:
        """Numeric wire code of the error, or None on success."""
        if self.error is None:
            return None
        return self.error.code.value

    def unwrap(self) -> Any:
        """Return the success value, raising if the operation failed."""
        if not self.ok:
            raise ValueError(f"Operation failed: {self.error.message} ({self.code})")
        return self.value

    def to_wire(self) -> Dict[str, Any]:
        """Tagged representation used by the command surface."""
        if self.ok:
            return {"type": "ok", "value": self.value}
        return {"type": "err", "value": self.code}


@dataclass(frozen=True)
class WireResult:
    """A result as seen by a remote caller: only the numeric code survives."""
    ok: bool
    value: Any = None
    code: Optional[ErrorCode] = None

    @classmethod
    def from_wire(cls, data: Dict[str, Any]) -> "WireResult":
        """Parse a tagged wire result."""
        if data.get("type") == "ok":
            return cls(ok=True, value=data.get("value"))
        return cls(ok=False, code=ErrorCode(data["value"]))


class CommandError(Exception):
    """Unknown command or malformed command arguments."""


class ConfigError(Exception):
    """Invalid engine configuration."""


class SnapshotError(Exception):
    """A state snapshot could not be restored."""

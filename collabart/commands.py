# collabart/commands.py
"""
Command surface.

Commands are the boundary through which front ends (CLI, HTTP server,
scenario files) drive the engine. Each command is registered by name with
its parameter list, and returns a Result whose wire form is

    {"type": "ok", "value": <value>}   or   {"type": "err", "value": <code>}

Usage:
    result = dispatch(engine, "create-artwork",
                      {"caller": "artist1", "title": "T", "description": "D"})
    result.to_wire()  # {"type": "ok", "value": 1}
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Tuple, Type

from .engine import Engine
from .errors import CommandError, Result
from .ids import ArtistId, ArtworkId, NftId

logger = logging.getLogger(__name__)

# Alternate spellings accepted for parameter names
PARAM_ALIASES = {
    "callerId": "caller",
    "caller_id": "caller",
    "artworkId": "artwork_id",
    "nftId": "nft_id",
    "contribution": "amount",
}


@dataclass
class Command:
    """A named engine operation."""
    name: str
    handler: Callable[..., Result]
    params: List[Tuple[str, Type]]
    help: str = ""

    @property
    def param_names(self) -> List[str]:
        return [name for name, _ in self.params]

    def bind(self, args: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Normalize and type-check raw arguments.

        Raises:
            CommandError: on missing, unknown or mistyped arguments
        """
        normalized: Dict[str, Any] = {}
        for key, value in args.items():
            normalized[PARAM_ALIASES.get(key, key)] = value

        unknown = sorted(set(normalized) - set(self.param_names))
        if unknown:
            raise CommandError(f"{self.name}: unknown arguments: {', '.join(unknown)}")

        bound = {}
        for name, expected in self.params:
            if name not in normalized:
                raise CommandError(f"{self.name}: missing argument '{name}'")
            bound[name] = _coerce(self.name, name, normalized[name], expected)
        return bound


def _coerce(command: str, name: str, value: Any, expected: Type) -> Any:
    """Convert a raw argument to the expected type."""
    if expected is int:
        if isinstance(value, bool):
            raise CommandError(f"{command}: '{name}' must be an integer, got {value!r}")
        if isinstance(value, int):
            return value
        if isinstance(value, str):
            try:
                return int(value.strip())
            except ValueError:
                pass
        raise CommandError(f"{command}: '{name}' must be an integer, got {value!r}")

    if not isinstance(value, str):
        raise CommandError(f"{command}: '{name}' must be a string, got {value!r}")
    return value


# Global command registry
_COMMANDS: Dict[str, Command] = {}


def register_command(name: str, params: List[Tuple[str, Type]], help: str = "") -> Callable:
    """
    Decorator to register a command handler.

    Usage:
        @register_command("buy-nft", [("caller", str), ("nft_id", int)])
        def buy_nft(engine, caller, nft_id):
            ...
    """
    def decorator(fn: Callable[..., Result]) -> Callable[..., Result]:
        if name in _COMMANDS:
            logger.warning(f"Overwriting command {name}")
        _COMMANDS[name] = Command(name=name, handler=fn, params=params, help=help)
        return fn
    return decorator


def get_command(name: str) -> Command:
    """Look up a command, raising CommandError if it is unknown."""
    command = _COMMANDS.get(name)
    if command is None:
        raise CommandError(f"Unknown command: {name}")
    return command


def list_commands() -> Dict[str, Command]:
    """List all registered commands."""
    return dict(_COMMANDS)


def dispatch(engine: Engine, name: str, args: Mapping[str, Any]) -> Result:
    """Validate arguments and run a command against an engine."""
    command = get_command(name)
    bound = command.bind(args)
    return command.handler(engine, **bound)


@register_command(
    "register-artist",
    [("caller", str), ("name", str)],
    help="Register the caller as an artist",
)
def register_artist(engine: Engine, caller: str, name: str) -> Result:
    return engine.register_artist(ArtistId(caller), name)


@register_command(
    "create-artwork",
    [("caller", str), ("title", str), ("description", str)],
    help="Create an artwork owned by the caller",
)
def create_artwork(engine: Engine, caller: str, title: str, description: str) -> Result:
    return engine.create_artwork(ArtistId(caller), title, description)


@register_command(
    "add-contribution",
    [("caller", str), ("artwork_id", int), ("amount", int)],
    help="Add a weighted contribution to an open artwork",
)
def add_contribution(engine: Engine, caller: str, artwork_id: int, amount: int) -> Result:
    return engine.add_contribution(ArtistId(caller), ArtworkId(artwork_id), amount)


@register_command(
    "finalize-artwork",
    [("caller", str), ("artwork_id", int)],
    help="Lock an artwork (creator only)",
)
def finalize_artwork(engine: Engine, caller: str, artwork_id: int) -> Result:
    return engine.finalize_artwork(ArtistId(caller), ArtworkId(artwork_id))


@register_command(
    "mint-nft",
    [("caller", str), ("artwork_id", int), ("price", int)],
    help="Mint the NFT of a finalized artwork",
)
def mint_nft(engine: Engine, caller: str, artwork_id: int, price: int) -> Result:
    return engine.mint_nft(ArtistId(caller), ArtworkId(artwork_id), price)


@register_command(
    "buy-nft",
    [("caller", str), ("nft_id", int)],
    help="Record the caller as the new owner of an NFT",
)
def buy_nft(engine: Engine, caller: str, nft_id: int) -> Result:
    return engine.buy_nft(ArtistId(caller), NftId(nft_id))

#!/usr/bin/env python3
"""
Collab Art CLI

Runs registry commands against a JSON state file:
  collabart register-artist <caller> <name>
  collabart create-artwork <caller> <title> <description>
  collabart add-contribution <caller> <artwork_id> <amount>
  collabart finalize-artwork <caller> <artwork_id>
  collabart mint-nft <caller> <artwork_id> <price>
  collabart buy-nft <caller> <nft_id>

Plus:
  collabart show [artist|artwork|nft <id>]   - Print state or one object
  collabart run <scenario.yaml>              - Run a scenario file
  collabart serve                            - Start the HTTP server

Command results are printed as {"type": "ok"|"err", "value": ...}.
The exit status is 0 for ok results and 1 for err results.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .commands import dispatch, list_commands
from .config import EngineConfig
from .engine import Engine
from .errors import CommandError, ConfigError, SnapshotError
from .scenario import Scenario, ScenarioRunner

logger = logging.getLogger(__name__)

DEFAULT_STATE_PATH = "collabart-state.json"


def load_engine(config: EngineConfig) -> Engine:
    """Load the engine from the state file, or start empty if it does not exist."""
    path = Path(config.state_path)
    if path.exists():
        return Engine.load(path, config)
    logger.debug(f"No state file at {path}, starting empty")
    return Engine(config)


def cmd_command(args, config: EngineConfig) -> int:
    """Run one registry command and persist the state."""
    engine = load_engine(config)
    command = list_commands()[args.command]
    raw = {name: getattr(args, name) for name in command.param_names}

    result = dispatch(engine, args.command, raw)
    if result.ok:
        engine.save(config.state_path)

    print(json.dumps(result.to_wire()))
    if not result.ok:
        print(f"{result.error.code.label}: {result.error.message}", file=sys.stderr)
        return 1
    return 0


def cmd_show(args, config: EngineConfig) -> int:
    """Print the state, or one artist/artwork/NFT."""
    engine = load_engine(config)

    if args.kind is None:
        print(json.dumps(engine.snapshot(), indent=2))
        return 0

    if args.id is None:
        print(f"Missing id for {args.kind}", file=sys.stderr)
        return 2

    if args.kind == "artist":
        obj = engine.get_artist(args.id)
    else:
        try:
            object_id = int(args.id)
        except ValueError:
            print(f"Invalid id: {args.id}", file=sys.stderr)
            return 2
        obj = engine.get_artwork(object_id) if args.kind == "artwork" else engine.get_nft(object_id)

    if obj is None:
        print(f"{args.kind} {args.id} not found", file=sys.stderr)
        return 1
    print(json.dumps(obj.to_dict(), indent=2))
    return 0


def cmd_run(args, config: EngineConfig) -> int:
    """Run a scenario file."""
    scenario = Scenario.from_file(Path(args.scenario))
    engine = Engine(config) if args.fresh else load_engine(config)

    print(f"Scenario: {scenario.name} ({len(scenario.steps)} steps)")
    report = ScenarioRunner(engine, stop_on_mismatch=args.stop).run(scenario)
    for outcome in report.outcomes:
        print(outcome.describe())

    if args.save:
        engine.save(config.state_path)

    if report.passed:
        print("\nAll expectations met")
        return 0
    print(f"\n{len(report.mismatches)} step(s) did not match")
    return 1


def cmd_serve(args, config: EngineConfig) -> int:
    """Start the HTTP server."""
    from .server import CollabServer

    server = CollabServer.from_config(config.merged(host=args.host, port=args.port))
    server.start()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="collabart",
        description="Collaborative art registry",
    )
    parser.add_argument("--state", help=f"State file (default: {DEFAULT_STATE_PATH})")
    parser.add_argument("--config", help="YAML configuration file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    for name, command in list_commands().items():
        command_parser = subparsers.add_parser(name, help=command.help)
        for param in command.param_names:
            command_parser.add_argument(param)

    # show command
    show_parser = subparsers.add_parser("show", help="Print state or one object")
    show_parser.add_argument("kind", nargs="?", choices=["artist", "artwork", "nft"])
    show_parser.add_argument("id", nargs="?")

    # run command
    run_parser = subparsers.add_parser("run", help="Run a scenario YAML file")
    run_parser.add_argument("scenario", help="Scenario YAML file")
    run_parser.add_argument("--fresh", action="store_true",
                            help="Start from an empty engine instead of the state file")
    run_parser.add_argument("--save", action="store_true",
                            help="Write the resulting state to the state file")
    run_parser.add_argument("--stop", action="store_true",
                            help="Stop at the first mismatched expectation")

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Start the HTTP server")
    serve_parser.add_argument("--host", help="Host to bind to")
    serve_parser.add_argument("--port", type=int, help="Port to bind to")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    try:
        config = EngineConfig.from_file(args.config) if args.config else EngineConfig()
        config = config.merged(state_path=args.state)
        if config.state_path is None:
            config = config.merged(state_path=DEFAULT_STATE_PATH)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else config.log_level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    try:
        if args.command == "show":
            return cmd_show(args, config)
        elif args.command == "run":
            return cmd_run(args, config)
        elif args.command == "serve":
            return cmd_serve(args, config)
        return cmd_command(args, config)
    except (CommandError, SnapshotError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())

# collabart/server.py
"""
HTTP server for the registry engine.

Exposes the command surface over JSON.

Endpoints:
    POST /commands/<name>     - Run a command (JSON body of arguments)
    GET  /commands            - List available commands
    GET  /artists/<caller>    - Get an artist
    GET  /artworks/<id>       - Get an artwork
    GET  /nfts/<id>           - Get an NFT
    GET  /activities?since=N  - Activity log entries after sequence N
    GET  /transfers?since=N   - Ownership-transfer-requested events after activity N
    GET  /state               - Full state snapshot
    GET  /health              - Liveness check

Command results are returned with status 200 whether they are ok or err;
the HTTP status only reports transport problems (400 malformed request,
404 unknown path or object).
"""

import json
import logging
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs, unquote, urlparse

from .commands import dispatch, list_commands
from .config import EngineConfig
from .engine import Engine
from .errors import CommandError, Result

logger = logging.getLogger(__name__)


class CollabServer:
    """
    HTTP front end for an Engine.

    Requests are handled on separate threads; every engine call goes
    through one lock so operations are applied in a single total order.

    Usage:
        server = CollabServer(Engine(), port=8080)
        server.start()  # Blocking
    """

    def __init__(
        self,
        engine: Engine,
        host: str = "127.0.0.1",
        port: int = 8080,
        state_path: Optional[Path | str] = None,
    ):
        self.engine = engine
        self.host = host
        self.port = port
        self.state_path = Path(state_path) if state_path else None
        self._lock = threading.Lock()
        self._httpd: Optional[ThreadingHTTPServer] = None

    @classmethod
    def from_config(cls, config: EngineConfig) -> "CollabServer":
        """Build a server, restoring state from config.state_path if it exists."""
        engine = None
        if config.state_path and Path(config.state_path).exists():
            engine = Engine.load(config.state_path, config)
        return cls(
            engine or Engine(config),
            host=config.host,
            port=config.port,
            state_path=config.state_path,
        )

    def run_command(self, name: str, args: Dict[str, Any]) -> Result:
        """Run a command under the engine lock."""
        with self._lock:
            result = dispatch(self.engine, name, args)
            if result.ok and self.state_path:
                try:
                    self.engine.save(self.state_path)
                except OSError as e:
                    # The transition is applied; the caller still gets its result
                    logger.error(f"Failed to save state to {self.state_path}: {e}")
            return result

    def read(self, fn):
        """Run a read-only function under the engine lock."""
        with self._lock:
            return fn(self.engine)

    def _create_handler(server_instance):
        """Create request handler with access to server instance."""

        class RequestHandler(BaseHTTPRequestHandler):
            server_ref = server_instance

            def log_message(self, format, *args):
                logger.debug(format % args)

            def _send_json(self, data: Any, status: int = 200):
                body = json.dumps(data).encode()
                self.send_response(status)
                self.send_header("Content-Type", "application/json")
                self.send_header("Content-Length", str(len(body)))
                self.end_headers()
                self.wfile.write(body)

            def _send_error(self, message: str, status: int = 400):
                self._send_json({"error": message}, status)

            def _since(self, query: Dict[str, List[str]]) -> int:
                try:
                    return int(query.get("since", ["0"])[0])
                except ValueError:
                    return -1

            def _send_object(self, obj):
                if obj is None:
                    self._send_error("Not found", 404)
                else:
                    self._send_json(obj.to_dict())

            def do_GET(self):
                parsed = urlparse(self.path)
                path = parsed.path
                query = parse_qs(parsed.query)
                ref = self.server_ref

                if path == "/health":
                    self._send_json({"status": "ok"})

                elif path == "/commands":
                    self._send_json({
                        name: {"params": cmd.param_names, "help": cmd.help}
                        for name, cmd in list_commands().items()
                    })

                elif path.startswith("/artists/"):
                    caller = unquote(path[len("/artists/"):])
                    self._send_object(ref.read(lambda e: e.get_artist(caller)))

                elif path.startswith("/artworks/") or path.startswith("/nfts/"):
                    kind, _, raw_id = path[1:].partition("/")
                    try:
                        object_id = int(raw_id)
                    except ValueError:
                        self._send_error(f"Invalid id: {raw_id}")
                        return
                    if kind == "artworks":
                        obj = ref.read(lambda e: e.get_artwork(object_id))
                    else:
                        obj = ref.read(lambda e: e.get_nft(object_id))
                    self._send_object(obj)

                elif path == "/activities":
                    since = self._since(query)
                    if since < 0:
                        self._send_error("Invalid 'since' parameter")
                        return
                    activities = ref.read(lambda e: e.activities.since(since))
                    self._send_json({"activities": [a.to_dict() for a in activities]})

                elif path == "/transfers":
                    since = self._since(query)
                    if since < 0:
                        self._send_error("Invalid 'since' parameter")
                        return
                    events = ref.read(lambda e: e.transfer_requests(since))
                    self._send_json({"transfers": [t.to_dict() for t in events]})

                elif path == "/state":
                    self._send_json(ref.read(lambda e: e.snapshot()))

                else:
                    self._send_error("Not found", 404)

            def do_POST(self):
                path = urlparse(self.path).path
                if not path.startswith("/commands/"):
                    self._send_error("Not found", 404)
                    return

                name = path[len("/commands/"):]
                try:
                    content_length = int(self.headers.get("Content-Length", 0))
                    body = self.rfile.read(content_length).decode() if content_length else "{}"
                    args = json.loads(body)
                    if not isinstance(args, dict):
                        raise CommandError("Request body must be a JSON object")
                    result = self.server_ref.run_command(name, args)
                except json.JSONDecodeError as e:
                    self._send_error(f"Invalid JSON: {e}")
                    return
                except CommandError as e:
                    self._send_error(str(e))
                    return

                self._send_json(result.to_wire())

        return RequestHandler

    def _bind(self) -> ThreadingHTTPServer:
        handler = self._create_handler()
        self._httpd = ThreadingHTTPServer((self.host, self.port), handler)
        # Port 0 picks a free port
        self.port = self._httpd.server_address[1]
        return self._httpd

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def start(self):
        """Start the HTTP server (blocking)."""
        httpd = self._httpd or self._bind()
        logger.info(f"Collab server starting on {self.host}:{self.port}")
        print(f"Collab server running on {self.url}")
        try:
            httpd.serve_forever()
        except KeyboardInterrupt:
            print("\nShutting down...")
        finally:
            httpd.server_close()

    def start_background(self) -> threading.Thread:
        """Start the server in a background thread."""
        httpd = self._bind()
        thread = threading.Thread(target=httpd.serve_forever)
        thread.daemon = True
        thread.start()
        return thread

    def shutdown(self):
        """Stop a server started with start_background()."""
        if self._httpd is not None:
            self._httpd.shutdown()
            self._httpd.server_close()
            self._httpd = None


def main():
    """CLI entry point."""
    import argparse

    parser = argparse.ArgumentParser(description="Collaborative art registry server")
    parser.add_argument("--config", help="YAML configuration file")
    parser.add_argument("--host", help="Host to bind to")
    parser.add_argument("--port", type=int, help="Port to bind to")
    parser.add_argument("--state", help="JSON state file (loaded and kept up to date)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")

    args = parser.parse_args()

    config = EngineConfig.from_file(args.config) if args.config else EngineConfig()
    config = config.merged(host=args.host, port=args.port, state_path=args.state)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else config.log_level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    server = CollabServer.from_config(config)
    server.start()


if __name__ == "__main__":
    main()

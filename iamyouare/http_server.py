"""Flask responder — answers any path and method with the server/client JSON line."""

import logging
import socket
import threading

from flask import Flask, Response, request
from werkzeug.routing import Rule
from werkzeug.serving import WSGIRequestHandler, make_server

from iamyouare.config import ListenerConfig
from iamyouare.errors import ResponderError
from iamyouare.formatter import format_address, format_message
from iamyouare.netutil import bind_socket

logger = logging.getLogger(__name__)


def create_app(hostname: str) -> Flask:
    app = Flask(__name__)

    def whoami(path):
        client = format_address((
            request.environ.get("REMOTE_ADDR", ""),
            request.environ.get("REMOTE_PORT", ""),
        ))
        logger.info("HTTP request from %s", client)
        return Response(format_message(hostname, client).to_line(), mimetype="text/plain")

    # methods=None matches every method, extension methods included.
    app.url_map.add(Rule("/", defaults={"path": ""}, endpoint="whoami", methods=None))
    app.url_map.add(Rule("/<path:path>", endpoint="whoami", methods=None))
    app.view_functions["whoami"] = whoami
    return app


class CloseConnectionHandler(WSGIRequestHandler):
    """Sends exactly one ``Connection: close`` on every final response.

    Closing after each response keeps every request on a fresh client
    connection, so the reported client address is always current.
    """

    def send_response_only(self, code, message=None):
        # Interim (1xx) responses carry no Connection header.
        self._connection_sent = code < 200
        super().send_response_only(code, message)

    def send_header(self, keyword, value):
        if keyword.lower() == "connection":
            if getattr(self, "_connection_sent", False):
                return
            self._connection_sent = True
            value = "close"
        super().send_header(keyword, value)

    def end_headers(self):
        if not getattr(self, "_connection_sent", True):
            self.send_header("Connection", "close")
        super().end_headers()


class HTTPResponder:
    """Serves the Flask app on werkzeug's threaded server, one thread per request."""

    def __init__(self, config: ListenerConfig, hostname: str, shutdown_event: threading.Event):
        self._config = config
        self._shutdown = shutdown_event
        self._app = create_app(hostname)
        self._server = None
        self._serving = threading.Event()

    @property
    def app(self) -> Flask:
        return self._app

    @property
    def server_address(self) -> tuple | None:
        """Return (host, port) the responder is bound to. Useful when port=0."""
        if self._server is None:
            return None
        return self._server.server_address[:2]

    def bind(self):
        # Bind here rather than in werkzeug so the wildcard is always dual-stack;
        # werkzeug adopts a duplicate of the listening descriptor.
        try:
            sock = bind_socket(self._config.host, self._config.port, socket.SOCK_STREAM)
        except OSError as exc:
            raise ResponderError(f"HTTP listen on port {self._config.port}: {exc}") from exc
        try:
            sock.listen(128)
            host, port = sock.getsockname()[:2]
            self._server = make_server(
                host, port, self._app,
                threaded=True, request_handler=CloseConnectionHandler, fd=sock.fileno(),
            )
        except OSError as exc:
            raise ResponderError(f"HTTP listen on port {self._config.port}: {exc}") from exc
        finally:
            sock.close()

    def serve(self):
        """Serve requests until stopped. A serve-level failure is fatal."""
        if self._server is None:
            self.bind()
        logger.info("serving HTTP on port %d", self.server_address[1])

        self._serving.set()
        try:
            self._server.serve_forever()
        except OSError as exc:
            if self._shutdown.is_set():
                return
            raise ResponderError(f"HTTP serve: {exc}") from exc

    def stop(self):
        self._shutdown.set()
        if self._server is None:
            return
        if self._serving.is_set():
            self._server.shutdown()
        self._server.server_close()

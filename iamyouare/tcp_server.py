"""TCP accept loop — answers each connection with one JSON line, then closes."""

import logging
import socket
import threading

from iamyouare.config import ListenerConfig
from iamyouare.errors import ResponderError
from iamyouare.formatter import format_address, format_message
from iamyouare.netutil import bind_socket

logger = logging.getLogger(__name__)


def handle_connection(conn: socket.socket, addr: tuple, hostname: str):
    """Write the response to a single client and close. Runs in its own thread."""
    client = format_address(addr)
    logger.info("TCP request from %s", client)
    try:
        conn.sendall(format_message(hostname, client).encode())
    except OSError as exc:
        logger.debug("TCP write to %s failed: %s", client, exc)
    finally:
        conn.close()


class TCPResponder:
    """Raw TCP responder, one thread per accepted connection."""

    def __init__(self, config: ListenerConfig, hostname: str, shutdown_event: threading.Event):
        self._config = config
        self._hostname = hostname
        self._shutdown_event = shutdown_event
        self._sock = None
        self._server_address = None

    @property
    def server_address(self) -> tuple | None:
        """Return (host, port) the responder is bound to. Useful when port=0."""
        return self._server_address

    def bind(self):
        try:
            sock = bind_socket(self._config.host, self._config.port, socket.SOCK_STREAM)
        except OSError as exc:
            raise ResponderError(f"TCP listen on port {self._config.port}: {exc}") from exc
        try:
            sock.settimeout(1.0)
            sock.listen(128)
        except OSError as exc:
            sock.close()
            raise ResponderError(f"TCP listen on port {self._config.port}: {exc}") from exc

        self._sock = sock
        self._server_address = sock.getsockname()[:2]

    def serve(self):
        """Accept connections until shutdown. An accept failure is fatal."""
        if self._sock is None:
            self.bind()
        logger.info("serving TCP on port %d", self._server_address[1])

        while not self._shutdown_event.is_set():
            try:
                conn, addr = self._sock.accept()
            except socket.timeout:
                continue
            except OSError as exc:
                if self._shutdown_event.is_set():
                    break
                raise ResponderError(f"TCP accept: {exc}") from exc

            t = threading.Thread(
                target=handle_connection,
                args=(conn, addr, self._hostname),
                daemon=True,
            )
            t.start()

    def stop(self):
        """Signal shutdown and close the listen socket."""
        self._shutdown_event.set()
        if self._sock:
            try:
                self._sock.close()
            except OSError:
                pass

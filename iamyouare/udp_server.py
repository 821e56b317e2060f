"""UDP responder — replies to every datagram with one JSON line."""

import logging
import socket
import threading

from iamyouare.config import ListenerConfig
from iamyouare.errors import ResponderError
from iamyouare.formatter import format_address, format_message
from iamyouare.netutil import bind_socket

logger = logging.getLogger(__name__)


class UDPResponder:
    def __init__(self, config: ListenerConfig, hostname: str, shutdown_event: threading.Event):
        self._config = config
        self._hostname = hostname
        self._shutdown = shutdown_event
        self._sock = None
        self._server_address = None

    @property
    def server_address(self) -> tuple | None:
        """Return (host, port) the responder is bound to. Useful when port=0."""
        return self._server_address

    def bind(self):
        try:
            sock = bind_socket(self._config.host, self._config.port, socket.SOCK_DGRAM)
            sock.settimeout(1.0)
        except OSError as exc:
            raise ResponderError(f"UDP listen on port {self._config.port}: {exc}") from exc

        self._sock = sock
        self._server_address = sock.getsockname()[:2]

    def serve(self):
        """Receive datagrams serially until shutdown. A receive failure is fatal."""
        if self._sock is None:
            self.bind()
        logger.info("serving UDP on port %d", self.server_address[1])
        sock = self._sock

        while not self._shutdown.is_set():
            try:
                # Payload is ignored; only the sender address matters.
                _, addr = sock.recvfrom(self._config.udp_buffer_size)
            except socket.timeout:
                continue
            except OSError as exc:
                if self._shutdown.is_set():
                    break
                raise ResponderError(f"UDP receive: {exc}") from exc

            client = format_address(addr)
            logger.info("UDP request from %s", client)
            try:
                sock.sendto(format_message(self._hostname, client).encode(), addr)
            except OSError as exc:
                logger.debug("UDP reply to %s failed: %s", client, exc)

    def stop(self):
        self._shutdown.set()
        if self._sock:
            self._sock.close()
            self._sock = None

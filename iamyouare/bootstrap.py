"""Entry point wiring — config, hostname, responders and shutdown."""

import logging
import socket
import sys
import threading

from iamyouare.config import ListenerConfig, load_config, resolve_modes
from iamyouare.errors import ConfigError, IdentityError, ResponderError
from iamyouare.http_server import HTTPResponder
from iamyouare.shutdown import ShutdownCoordinator
from iamyouare.tcp_server import TCPResponder
from iamyouare.udp_server import UDPResponder

logger = logging.getLogger(__name__)


def resolve_hostname() -> str:
    try:
        hostname = socket.gethostname()
    except OSError as exc:
        raise IdentityError(f"error resolving hostname: {exc}") from exc
    if not hostname:
        raise IdentityError("error resolving hostname: empty name")
    return hostname


def build_responders(config: ListenerConfig, hostname: str, shutdown_event: threading.Event) -> list:
    responders = []
    if config.tcp:
        responders.append(TCPResponder(config, hostname, shutdown_event))
    if config.udp:
        responders.append(UDPResponder(config, hostname, shutdown_event))
    if config.http:
        responders.append(HTTPResponder(config, hostname, shutdown_event))
    return responders


def _serve(responder, coordinator: ShutdownCoordinator):
    try:
        responder.serve()
    except Exception as exc:
        coordinator.fail(exc)


def start_responders(responders: list, coordinator: ShutdownCoordinator) -> list:
    """Bind every responder, then serve each in its own daemon thread.

    A bind failure closes whatever was already bound and raises ResponderError.
    """
    try:
        for responder in responders:
            responder.bind()
    except ResponderError:
        for responder in responders:
            responder.stop()
        raise

    threads = []
    for responder in responders:
        t = threading.Thread(
            target=_serve,
            args=(responder, coordinator),
            name=type(responder).__name__,
            daemon=True,
        )
        t.start()
        threads.append(t)
    return threads


def run(config: ListenerConfig, coordinator: ShutdownCoordinator, hostname: str) -> int:
    """Serve until the coordinator terminates; return the exit code."""
    shutdown_event = threading.Event()
    responders = build_responders(config, hostname, shutdown_event)
    start_responders(responders, coordinator)
    try:
        return coordinator.wait()
    finally:
        for responder in responders:
            responder.stop()


def main(argv=None):
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )
    # Responders log each request themselves; drop werkzeug's access log.
    logging.getLogger("werkzeug").setLevel(logging.WARNING)

    config = load_config(argv)
    try:
        config = resolve_modes(config)
    except ConfigError as exc:
        logger.critical("%s", exc)
        sys.exit(2)

    try:
        hostname = resolve_hostname()
    except IdentityError as exc:
        logger.critical("%s", exc)
        sys.exit(1)

    coordinator = ShutdownCoordinator(config.grace_period_sec)
    coordinator.install()

    try:
        code = run(config, coordinator, hostname)
    except ResponderError as exc:
        logger.critical("%s", exc)
        code = 1
    sys.exit(code)

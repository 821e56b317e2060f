"""Integration tests — start a real TCP responder and connect with real sockets."""

import json
import socket
import threading
import time

import pytest

from iamyouare.config import ListenerConfig
from iamyouare.errors import ResponderError
from iamyouare.tcp_server import TCPResponder


def _make_responder(**overrides):
    """Create a responder with port=0 (OS-assigned) and return (responder, thread)."""
    defaults = {"tcp": True, "host": "127.0.0.1", "port": 0}
    defaults.update(overrides)
    responder = TCPResponder(ListenerConfig(**defaults), "test-host", threading.Event())

    thread = threading.Thread(target=responder.serve, daemon=True)
    thread.start()

    for _ in range(50):
        if responder.server_address is not None:
            break
        time.sleep(0.05)
    else:
        raise RuntimeError("Responder failed to bind")

    return responder, thread


def _read_all(sock) -> bytes:
    data = b""
    while True:
        chunk = sock.recv(4096)
        if not chunk:
            return data
        data += chunk


class TestTCPResponder:
    def test_replies_with_one_line_and_closes(self):
        responder, thread = _make_responder()
        try:
            with socket.create_connection(responder.server_address, timeout=5) as sock:
                local = sock.getsockname()
                data = _read_all(sock)
            assert data.endswith(b"\n")
            assert data.count(b"\n") == 1
            body = json.loads(data)
            assert body == {"server": "test-host", "client": f"{local[0]}:{local[1]}"}
        finally:
            responder.stop()
            thread.join(timeout=5)

    def test_concurrent_clients(self):
        responder, thread = _make_responder()
        try:
            socks = [socket.create_connection(responder.server_address, timeout=5) for _ in range(5)]
            try:
                replies = [json.loads(_read_all(s)) for s in socks]
            finally:
                for s in socks:
                    s.close()
            assert all(r["server"] == "test-host" for r in replies)
            assert len({r["client"] for r in replies}) == 5
        finally:
            responder.stop()
            thread.join(timeout=5)

    def test_client_closing_early_does_not_stop_server(self):
        responder, thread = _make_responder()
        try:
            socket.create_connection(responder.server_address, timeout=5).close()
            with socket.create_connection(responder.server_address, timeout=5) as sock:
                assert json.loads(_read_all(sock))["server"] == "test-host"
        finally:
            responder.stop()
            thread.join(timeout=5)

    def test_stop_ends_serve(self):
        responder, thread = _make_responder()
        responder.stop()
        thread.join(timeout=5)
        assert not thread.is_alive()


class TestTCPBind:
    def test_port_in_use_raises(self):
        blocker = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        blocker.bind(("127.0.0.1", 0))
        blocker.listen(1)
        try:
            port = blocker.getsockname()[1]
            responder = TCPResponder(
                ListenerConfig(tcp=True, host="127.0.0.1", port=port), "h", threading.Event(),
            )
            with pytest.raises(ResponderError, match="TCP listen"):
                responder.bind()
        finally:
            blocker.close()


@pytest.mark.skipif(not socket.has_dualstack_ipv6(), reason="no dual-stack IPv6")
class TestTCPDualStack:
    def test_wildcard_answers_ipv6_and_ipv4(self):
        responder, thread = _make_responder(host="")
        try:
            port = responder.server_address[1]
            with socket.create_connection(("::1", port), timeout=5) as sock:
                local = sock.getsockname()
                reply = json.loads(_read_all(sock))
            assert reply["client"] == f"[::1]:{local[1]}"

            with socket.create_connection(("127.0.0.1", port), timeout=5) as sock:
                local = sock.getsockname()
                reply = json.loads(_read_all(sock))
            assert reply["client"] == f"127.0.0.1:{local[1]}"
        finally:
            responder.stop()
            thread.join(timeout=5)

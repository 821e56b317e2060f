"""Response formatter — builds the server/client JSON line."""

import json
from dataclasses import dataclass

from iamyouare.netutil import unmap_host


@dataclass(frozen=True)
class ResponseMessage:
    server: str
    client: str

    def to_line(self) -> str:
        """Render as a single JSON object terminated by a newline."""
        return '{"server":%s, "client":%s}\n' % (json.dumps(self.server), json.dumps(self.client))

    def encode(self) -> bytes:
        return self.to_line().encode("utf-8")


def format_message(server: str, client: str) -> ResponseMessage:
    return ResponseMessage(server=server, client=client)


def format_address(addr: tuple) -> str:
    """Render a socket address as host:port, bracketing IPv6 hosts."""
    host, port = unmap_host(addr[0]), addr[1]
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"

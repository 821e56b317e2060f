"""Configuration module — frozen dataclass loaded from command-line flags."""

import argparse
from dataclasses import dataclass, replace

from iamyouare.errors import ConfigError


@dataclass(frozen=True)
class ListenerConfig:
    tcp: bool = False
    udp: bool = False
    http: bool = False
    port: int = 9376
    host: str = ""  # empty binds the wildcard, dual-stack when available
    udp_buffer_size: int = 16
    grace_period_sec: float = 60.0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="iamyouare",
        description="Serve connection debug info over TCP, UDP or HTTP",
    )
    parser.add_argument("-tcp", action="store_true", default=False, help="serve raw over TCP")
    parser.add_argument("-udp", action="store_true", default=False, help="serve raw over UDP")
    parser.add_argument("-http", action="store_true", default=False, help="serve HTTP")
    parser.add_argument("-port", type=int, default=ListenerConfig.port, help="port number")
    return parser


def load_config(argv=None) -> ListenerConfig:
    """Build ListenerConfig from CLI flags.

    Pass argv for testability; when None, argparse reads sys.argv.
    """
    args = _build_parser().parse_args(argv)
    return ListenerConfig(tcp=args.tcp, udp=args.udp, http=args.http, port=args.port)


def resolve_modes(config: ListenerConfig) -> ListenerConfig:
    """Apply the HTTP default and reject HTTP combined with TCP/UDP."""
    if not (config.tcp or config.udp or config.http):
        return replace(config, http=True)
    if config.http and (config.tcp or config.udp):
        raise ConfigError("can't serve TCP/UDP mode and HTTP mode at the same time")
    return config

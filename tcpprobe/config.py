"""Run configuration for a probe run."""

from dataclasses import dataclass
from typing import Optional, Tuple

from .errors import ConfigError

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8085
DEFAULT_TARGET = f"{DEFAULT_HOST}:{DEFAULT_PORT}"
DEFAULT_CLIENTS = 5
PROBE_BYTE = 40
DEFAULT_TIMEOUT = None


def parse_endpoint(target: str) -> Tuple[str, int]:
    """Split a ``host:port`` string into its parts.

    IPv6 literals must be bracketed, e.g. ``[::1]:8085``.
    """
    if not target:
        raise ConfigError("empty target endpoint")

    if target.startswith("["):
        host, sep, rest = target[1:].partition("]")
        if not sep or not rest.startswith(":"):
            raise ConfigError(f"malformed endpoint: {target!r}")
        port_text = rest[1:]
    else:
        host, sep, port_text = target.rpartition(":")
        if not sep:
            raise ConfigError(f"missing port in endpoint: {target!r}")

    if not host:
        raise ConfigError(f"missing host in endpoint: {target!r}")
    if not port_text.isdigit():
        raise ConfigError(f"invalid port in endpoint: {target!r}")

    port = int(port_text)
    if not 1 <= port <= 65535:
        raise ConfigError(f"port out of range: {port}")
    return host, port


@dataclass(frozen=True)
class RunConfig:
    """Immutable parameters shared by every client task of a run."""
    host: str
    port: int
    clients: int = DEFAULT_CLIENTS
    probe_byte: int = PROBE_BYTE
    timeout: Optional[float] = DEFAULT_TIMEOUT
    allow_partial: bool = False

    def __post_init__(self):
        if not self.host:
            raise ConfigError("host must not be empty")
        if not 1 <= self.port <= 65535:
            raise ConfigError(f"port out of range: {self.port}")
        if self.clients < 1:
            raise ConfigError(f"client count must be at least 1, got {self.clients}")
        if not 0 <= self.probe_byte <= 255:
            raise ConfigError(f"probe byte must fit in one byte, got {self.probe_byte}")
        if self.timeout is not None and self.timeout <= 0:
            raise ConfigError(f"timeout must be positive, got {self.timeout}")

    @property
    def address(self) -> Tuple[str, int]:
        return (self.host, self.port)

    @property
    def target(self) -> str:
        if ":" in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"


def build_config(
    target: str = DEFAULT_TARGET,
    clients: int = DEFAULT_CLIENTS,
    probe_byte: int = PROBE_BYTE,
    timeout: Optional[float] = DEFAULT_TIMEOUT,
    allow_partial: bool = False,
) -> RunConfig:
    """Resolve a target string and client count into a RunConfig."""
    host, port = parse_endpoint(target)
    return RunConfig(
        host=host,
        port=port,
        clients=clients,
        probe_byte=probe_byte,
        timeout=timeout,
        allow_partial=allow_partial,
    )

"""Per-client measurement records and task results."""

import ipaddress
from dataclasses import dataclass
from typing import Optional

RESPONSE_SIZE = 4


def render_server_identifier(response: bytes) -> str:
    """Render a 4-byte reply as a dotted-decimal IPv4 address."""
    if len(response) != RESPONSE_SIZE:
        raise ValueError(
            f"expected {RESPONSE_SIZE} response bytes, got {len(response)}"
        )
    return str(ipaddress.IPv4Address(bytes(response)))


def format_endpoint(sockname) -> str:
    """Render a socket address tuple as ``address:port``."""
    host, port = sockname[0], sockname[1]
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


@dataclass(frozen=True)
class Measurement:
    """One completed request/response exchange."""
    client_endpoint: str
    server_identifier: str
    turnaround_time_ms: int

    @classmethod
    def from_response(cls, client_endpoint: str, response: bytes, turnaround_time_ms: int) -> "Measurement":
        """Build a record from the raw 4-byte server response."""
        if turnaround_time_ms < 0:
            raise ValueError(f"negative turnaround time: {turnaround_time_ms}")
        return cls(
            client_endpoint=client_endpoint,
            server_identifier=render_server_identifier(response),
            turnaround_time_ms=turnaround_time_ms,
        )

    def describe(self) -> str:
        return (
            f"client={self.client_endpoint} server={self.server_identifier} "
            f"turnaround={self.turnaround_time_ms}ms"
        )


@dataclass(frozen=True)
class ClientFailure:
    """Why a client task did not produce a measurement."""
    client_id: int
    stage: str
    reason: str

    def describe(self) -> str:
        return f"client #{self.client_id} failed during {self.stage}: {self.reason}"


@dataclass(frozen=True)
class ClientResult:
    """Outcome of one client task: a measurement or a failure, never both."""
    client_id: int
    measurement: Optional[Measurement] = None
    failure: Optional[ClientFailure] = None

    def __post_init__(self):
        if (self.measurement is None) == (self.failure is None):
            raise ValueError("exactly one of measurement or failure must be set")

    @property
    def ok(self) -> bool:
        return self.measurement is not None

    @classmethod
    def success(cls, client_id: int, measurement: Measurement) -> "ClientResult":
        return cls(client_id=client_id, measurement=measurement)

    @classmethod
    def failed(cls, client_id: int, stage: str, reason: str) -> "ClientResult":
        return cls(client_id=client_id, failure=ClientFailure(client_id, stage, reason))

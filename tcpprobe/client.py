"""Client task: one connection, one probe byte, one timed 4-byte response."""

import logging
import socket
import threading
import time

from .channel import ResultChannel
from .config import RunConfig
from .errors import ClientError, ConnectFailed, ReceiveFailed, SendFailed, ShortRead
from .record import RESPONSE_SIZE, ClientResult, Measurement, format_endpoint


logger = logging.getLogger("tcpprobe")

# Serializes diagnostic lines written by concurrent client threads.
_output_lock = threading.Lock()


def recv_exact(sock: socket.socket, size: int) -> bytes:
    """Read exactly ``size`` bytes, raising ShortRead on early EOF."""
    buf = bytearray()
    while len(buf) < size:
        try:
            chunk = sock.recv(size - len(buf))
        except OSError as e:
            raise ReceiveFailed(f"receive failed after {len(buf)} bytes: {e}") from e
        if not chunk:
            raise ShortRead(f"connection closed after {len(buf)} of {size} bytes")
        buf.extend(chunk)
    return bytes(buf)


def measure_turnaround(config: RunConfig) -> Measurement:
    """Run a single probe exchange against the configured endpoint."""
    try:
        sock = socket.create_connection(config.address, timeout=config.timeout)
    except OSError as e:
        raise ConnectFailed(f"cannot connect to {config.target}: {e}") from e

    try:
        try:
            sock.sendall(bytes([config.probe_byte]))
        except OSError as e:
            raise SendFailed(f"cannot send probe byte: {e}") from e

        t_start = time.perf_counter()
        response = recv_exact(sock, RESPONSE_SIZE)
        t_end = time.perf_counter()

        turnaround_ms = int((t_end - t_start) * 1000)
        client_endpoint = format_endpoint(sock.getsockname())
        return Measurement.from_response(client_endpoint, response, turnaround_ms)
    finally:
        sock.close()


def client_worker(client_id: int, config: RunConfig, channel: ResultChannel) -> None:
    """Thread body: measure once and report exactly one result."""
    try:
        measurement = measure_turnaround(config)
    except ClientError as e:
        logger.warning(f"Client #{client_id} failed during {e.stage}: {e}")
        channel.send(ClientResult.failed(client_id, e.stage, str(e)))
        return

    with _output_lock:
        print(measurement.describe(), flush=True)
    channel.send(ClientResult.success(client_id, measurement))

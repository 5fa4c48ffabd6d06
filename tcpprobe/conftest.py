"""Shared fixtures: a threaded stub server speaking the probe protocol."""

import logging
import socket
import threading
import time

import pytest


class StubServer:
    """Answers each probe byte with a fixed 4-byte reply after a delay.

    ``reply`` may be shorter than 4 bytes to simulate a truncated response.
    The server keeps each connection open until the client closes it, so
    client ports stay in TIME_WAIT and are not reused within a run.
    """

    def __init__(self, reply=bytes([127, 0, 0, 1]), delay_ms=0):
        self.reply = reply
        self.delay_ms = delay_ms
        self.received = []
        self._lock = threading.Lock()
        self._sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._sock.bind(("127.0.0.1", 0))
        self._sock.listen(128)
        self._sock.settimeout(0.1)
        self._running = True
        self._thread = threading.Thread(target=self._serve, daemon=True)

    @property
    def port(self):
        return self._sock.getsockname()[1]

    @property
    def target(self):
        return f"127.0.0.1:{self.port}"

    def start(self):
        self._thread.start()
        return self

    def stop(self):
        self._running = False
        self._thread.join(timeout=2)
        self._sock.close()

    def _serve(self):
        while self._running:
            try:
                conn, _ = self._sock.accept()
            except socket.timeout:
                continue
            except OSError:
                return
            threading.Thread(target=self._handle, args=(conn,), daemon=True).start()

    def _handle(self, conn):
        conn.settimeout(5.0)
        try:
            data = conn.recv(1)
            if not data:
                return
            with self._lock:
                self.received.append(data)
            if self.delay_ms > 0:
                time.sleep(self.delay_ms / 1000.0)
            conn.sendall(self.reply)
            if len(self.reply) < 4:
                return
            while conn.recv(64):
                pass
        except OSError:
            pass
        finally:
            conn.close()


@pytest.fixture
def stub_server():
    """Factory fixture: ``stub_server(reply=..., delay_ms=...)``."""
    servers = []

    def make(**kwargs):
        server = StubServer(**kwargs).start()
        servers.append(server)
        return server

    yield make

    for server in servers:
        server.stop()


@pytest.fixture
def closed_port():
    """A local port with nothing listening on it."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


@pytest.fixture(autouse=True)
def reset_probe_logger():
    """Drop handlers installed by setup_logging so each test starts clean."""
    logger = logging.getLogger("tcpprobe")
    logger.handlers.clear()
    yield
    logger.handlers.clear()
    logger.propagate = True

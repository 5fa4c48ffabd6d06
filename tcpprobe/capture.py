#!/usr/bin/env python3
"""
Wire-level cross-check of a probe run.

Reads a packet capture taken while tcpprobe was running and measures, per
connection, the time between the client's 1-byte probe segment and the
segment that completes the 4-byte server reply. Compare the result with the
turnaround times tcpprobe itself reported.

Usage:
    python3 -m tcpprobe.capture --pcap /tmp/probe.pcap --port 8085
"""

import argparse
import logging
import sys
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from scapy.layers.inet import IP, TCP
from scapy.packet import Packet, Raw
from scapy.error import Scapy_Exception
from scapy.utils import rdpcap

from .config import DEFAULT_PORT
from .logger import setup_logging
from .record import RESPONSE_SIZE, format_endpoint, render_server_identifier


logger = logging.getLogger("tcpprobe")

ClientKey = Tuple[str, int]


@dataclass(frozen=True)
class WireExchange:
    """Probe exchange as seen on the wire."""
    client_endpoint: str
    server_identifier: str
    turnaround_ms: float


def _payload(packet: Packet) -> bytes:
    if packet.haslayer(Raw):
        return bytes(packet[Raw].load)
    return b""


@dataclass
class _FlowState:
    """Reply reassembly for the current exchange on one client port."""
    probe_time: float
    probe_seq: int
    reply_seq: int
    segments: Dict[int, bytes] = field(default_factory=dict)
    done: bool = False

    def add_reply(self, seq: int, payload: bytes) -> Optional[bytes]:
        """Store a reply segment by offset; return the reply once complete."""
        offset = (seq - self.reply_seq) & 0xFFFFFFFF
        if offset >= RESPONSE_SIZE:
            return None
        # Retransmissions land on the same offset.
        self.segments[offset] = payload

        reply = b""
        while len(reply) < RESPONSE_SIZE and len(reply) in self.segments:
            reply += self.segments[len(reply)]
        if len(reply) < RESPONSE_SIZE:
            return None
        self.done = True
        return reply[:RESPONSE_SIZE]


def find_exchanges(packets, server_port: int) -> List[WireExchange]:
    """Pair each probe byte with the completion of its 4-byte reply."""
    flows: Dict[ClientKey, _FlowState] = {}
    exchanges = []

    for packet in packets:
        if not (packet.haslayer(IP) and packet.haslayer(TCP)):
            continue
        payload = _payload(packet)
        if not payload:
            continue

        tcp = packet[TCP]
        if tcp.dport == server_port:
            key = (packet[IP].src, tcp.sport)
            if len(payload) != 1:
                continue
            state = flows.get(key)
            if state is not None and (not state.done or state.probe_seq == tcp.seq):
                continue
            # The probe acknowledges up to the first byte the server will send.
            flows[key] = _FlowState(
                probe_time=float(packet.time), probe_seq=tcp.seq, reply_seq=tcp.ack,
            )
        elif tcp.sport == server_port:
            key = (packet[IP].dst, tcp.dport)
            state = flows.get(key)
            if state is None or state.done:
                continue
            reply = state.add_reply(tcp.seq, payload)
            if reply is not None:
                exchanges.append(WireExchange(
                    client_endpoint=format_endpoint(key),
                    server_identifier=render_server_identifier(reply),
                    turnaround_ms=(float(packet.time) - state.probe_time) * 1000,
                ))

    incomplete = sum(1 for state in flows.values() if not state.done)
    if incomplete:
        logger.warning(f"{incomplete} probe(s) without a complete reply in capture")
    return exchanges


def analyze(pcap_path: str, server_port: int) -> int:
    """Print wire turnaround per connection. Returns the process exit code."""
    logger.info(f"Loading {pcap_path}")
    try:
        packets = rdpcap(pcap_path)
    except (OSError, Scapy_Exception) as e:
        logger.error(f"Cannot read {pcap_path}: {e}")
        return 1

    exchanges = find_exchanges(packets, server_port)
    if not exchanges:
        logger.error(f"No complete probe exchange with port {server_port} found")
        return 1

    for ex in exchanges:
        print(f"client={ex.client_endpoint} server={ex.server_identifier} "
              f"wire_turnaround={ex.turnaround_ms:.3f}ms")

    average = sum(ex.turnaround_ms for ex in exchanges) / len(exchanges)
    print(f"Exchanges: {len(exchanges)} Average wire turnaround {average:.3f}ms")
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Measure probe turnaround from a packet capture"
    )
    parser.add_argument("--pcap", required=True, help="Capture file to analyze")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT,
                        help=f"Server port of the probed endpoint (default: {DEFAULT_PORT})")
    parser.add_argument("--verbose", action="store_true", help="Enable DEBUG logging")
    args = parser.parse_args(argv)

    setup_logging(logging.DEBUG if args.verbose else logging.INFO)
    sys.exit(analyze(args.pcap, args.port))


if __name__ == "__main__":
    main()

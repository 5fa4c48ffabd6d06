"""Exceptions raised by tcpprobe."""

from typing import List, Optional

from .record import ClientFailure


class ProbeError(Exception):
    """Base class for all tcpprobe errors."""


class ConfigError(ProbeError, ValueError):
    """Invalid run configuration."""


class ClientError(ProbeError):
    """A single client task could not complete its exchange."""

    stage = "unknown"


class ConnectFailed(ClientError):
    stage = "connect"


class SendFailed(ClientError):
    stage = "send"


class ReceiveFailed(ClientError):
    stage = "receive"


class ShortRead(ReceiveFailed):
    """Connection closed before the full response arrived."""


class ChannelError(ProbeError):
    """Result channel used outside its one-shot contract."""


class ChannelEmpty(ChannelError):
    """Drained a channel whose task finished without reporting."""


class ProbeFailed(ProbeError):
    """Run finished without a usable summary."""

    def __init__(self, message: str, failures: Optional[List[ClientFailure]] = None):
        super().__init__(message)
        self.failures = list(failures or [])

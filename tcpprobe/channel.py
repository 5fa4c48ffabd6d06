"""One-shot result channel between a client task and the collector."""

import queue

from .errors import ChannelEmpty, ChannelError
from .record import ClientResult


class ResultChannel:
    """Single-producer, single-consumer handoff carrying one ClientResult.

    The producer sends exactly once. The collector drains exactly once,
    after the producing thread has been joined, so draining never waits.
    """

    def __init__(self, client_id: int):
        self.client_id = client_id
        self._queue: "queue.Queue[ClientResult]" = queue.Queue(maxsize=1)
        self._drained = False

    def send(self, result: ClientResult) -> None:
        """Hand the task's result to the collector."""
        if self._drained:
            raise ChannelError(f"channel for client #{self.client_id} already drained")
        try:
            self._queue.put_nowait(result)
        except queue.Full:
            raise ChannelError(
                f"channel for client #{self.client_id} already holds a result"
            ) from None

    def drain(self) -> ClientResult:
        """Take the pending result, failing if there is none."""
        if self._drained:
            raise ChannelError(f"channel for client #{self.client_id} already drained")
        try:
            result = self._queue.get_nowait()
        except queue.Empty:
            raise ChannelEmpty(
                f"client #{self.client_id} finished without reporting a result"
            ) from None
        self._drained = True
        return result
